"""Pre-submission checks on the caller's ranked selections."""

from typing import Iterable, List, Optional

from luncher.shared.models import BALLOTS_PER_VOTER, Candidate


def selected_candidates(candidates: Iterable[Candidate]) -> List[Candidate]:
    """
    Get the candidates the caller has ranked.

    Args:
        candidates: Current candidate set

    Returns:
        list: Candidates holding a rank, in their original order
    """
    return [candidate for candidate in candidates if candidate.vote is not None]


def validate_ballot(candidates: Iterable[Candidate]) -> tuple[bool, Optional[str]]:
    """
    Validate the caller's selections before anything is sent to the store.

    Exactly one candidate must hold each rank. Rank uniqueness is checked
    here even though the rank pool already prevents duplicates.

    Args:
        candidates: Current candidate set

    Returns:
        tuple: (is_valid, error_message)
    """
    selected = selected_candidates(candidates)

    if len(selected) != BALLOTS_PER_VOTER:
        return False, f"Exactly {BALLOTS_PER_VOTER} restaurants must be ranked, got {len(selected)}"

    ranks = {candidate.vote for candidate in selected}
    if len(ranks) != len(selected):
        return False, "Each rank may be given to only one restaurant"

    return True, None
