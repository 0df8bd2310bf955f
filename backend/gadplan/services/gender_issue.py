"""Codec for the legacy single-string ``gender_issue`` column.

Stored rows combine the issue statement, its supporting data and the data
source into three labelled lines::

    Issue: <statement>
    Data: <data_evidence>
    Source: <source>

Decoding splits on newlines and strips the first occurrence of each label,
so the round trip is exact only when no field contains a newline. A field
with an embedded newline shifts every later line (e.g. the tail of the
statement becomes the decoded data and the data becomes the source).
"""

from gadplan.models.proposal import GenderIssue

ISSUE_PREFIX = "Issue: "
DATA_PREFIX = "Data: "
SOURCE_PREFIX = "Source: "


def encode(issue: GenderIssue) -> str:
    """Serialize a structured gender issue into the stored blob."""
    return (
        f"{ISSUE_PREFIX}{issue.statement}\n"
        f"{DATA_PREFIX}{issue.data_evidence}\n"
        f"{SOURCE_PREFIX}{issue.source}"
    )


def decode(blob: str | None) -> GenderIssue:
    """Split a stored blob back into its three fields.

    Missing lines decode to empty strings; ``None`` or ``""`` decodes to an
    empty GenderIssue.
    """
    if not blob:
        return GenderIssue()
    parts = blob.split("\n")

    def _part(index: int, prefix: str) -> str:
        if index >= len(parts):
            return ""
        return parts[index].replace(prefix, "", 1)

    return GenderIssue(
        statement=_part(0, ISSUE_PREFIX),
        data_evidence=_part(1, DATA_PREFIX),
        source=_part(2, SOURCE_PREFIX),
    )
