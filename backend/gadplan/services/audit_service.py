"""Completeness check shown to reviewers alongside a submitted proposal.

Starts from 100 and deducts for gaps a reviewer would otherwise flag by
hand. The score is advisory; it never gates a transition.
"""

from gadplan.models.proposal import AuditReport, Proposal

BASE_SCORE = 100
MIN_OBJECTIVE_LENGTH = 20
BRIEF_OBJECTIVE_PENALTY = 20
MISSING_INDICATORS_PENALTY = 30


def score_proposal(proposal: Proposal) -> AuditReport:
    score = BASE_SCORE
    findings: list[str] = []

    if len((proposal.objective or "").strip()) < MIN_OBJECTIVE_LENGTH:
        score -= BRIEF_OBJECTIVE_PENALTY
        findings.append("Objective is too brief.")

    if not proposal.indicators:
        score -= MISSING_INDICATORS_PENALTY
        findings.append("CRITICAL: Missing Success Indicators.")

    return AuditReport(proposal_id=proposal.id, score=score, findings=findings)
