"""
Unit Tests for the Gender Issue Codec

Tests the legacy "Issue: / Data: / Source: " string form and how stored
rows choose between it and the native columns.

Usage:
    cd backend && pytest tests/test_gender_issue.py -v
"""

import pytest

from gadplan.errors import StoreError
from gadplan.models.proposal import GenderIssue
from gadplan.services import gender_issue
from gadplan.stores.rows import row_to_proposal


class TestEncodeDecode:
    """Tests for encode/decode."""

    def test_encode_format(self):
        blob = gender_issue.encode(GenderIssue(statement="A", data_evidence="B", source="C"))
        assert blob == "Issue: A\nData: B\nSource: C"

    def test_round_trip_without_newlines(self):
        issue = GenderIssue(
            statement="Low female enrolment in ICT courses",
            data_evidence="22% of enrollees are women",
            source="TESDA 2025",
        )
        assert gender_issue.decode(gender_issue.encode(issue)) == issue

    def test_empty_fields_round_trip(self):
        assert gender_issue.decode(gender_issue.encode(GenderIssue())) == GenderIssue()

    def test_none_and_empty_blob(self):
        assert gender_issue.decode(None) == GenderIssue()
        assert gender_issue.decode("") == GenderIssue()

    def test_missing_lines_decode_to_empty(self):
        decoded = gender_issue.decode("Issue: only the statement")
        assert decoded == GenderIssue(statement="only the statement")

    def test_only_first_prefix_stripped(self):
        decoded = gender_issue.decode("Issue: Issue: nested\nData: x\nSource: y")
        assert decoded.statement == "Issue: nested"

    def test_embedded_newline_shifts_fields(self):
        issue = GenderIssue(statement="line one\nline two", data_evidence="data", source="src")
        decoded = gender_issue.decode(gender_issue.encode(issue))
        assert decoded != issue
        assert decoded.statement == "line one"
        assert decoded.data_evidence == "line two"
        assert decoded.source == "Data: data"


class TestStoredRows:
    """Native columns win over the legacy blob."""

    def test_native_columns_preferred(self):
        proposal = row_to_proposal(
            {
                "id": "p1",
                "issue_statement": "multi\nline",
                "issue_data": "d",
                "issue_source": "s",
                "gender_issue": "Issue: stale\nData: stale\nSource: stale",
            }
        )
        assert proposal.gender_issue == GenderIssue(statement="multi\nline", data_evidence="d", source="s")

    def test_legacy_rows_decoded(self):
        proposal = row_to_proposal(
            {"id": "p1", "gender_issue": "Issue: old\nData: rows\nSource: here", "status": "Returned"}
        )
        assert proposal.gender_issue == GenderIssue(statement="old", data_evidence="rows", source="here")
        assert proposal.status.is_revision


class TestUnreadableRows:
    """Rows the workflow cannot interpret surface as store errors."""

    def test_unknown_status(self):
        with pytest.raises(StoreError) as exc_info:
            row_to_proposal({"id": "p9", "status": "Pending"})
        assert "p9" in str(exc_info.value)
        assert "'Pending'" in str(exc_info.value)
        assert isinstance(exc_info.value.__cause__, ValueError)

    def test_unknown_fund_type(self):
        with pytest.raises(StoreError):
            row_to_proposal(
                {"id": "p9", "status": "Submitted"},
                budget_items=[{"item_description": "x", "amount": 10, "fund_type": "CAPEX"}],
            )

    def test_missing_status_reads_as_draft(self):
        assert row_to_proposal({"id": "p9"}).status.value == "Draft"
