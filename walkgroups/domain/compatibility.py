"""
Dog compatibility gate. Pure predicates.

Friendliness is a global per-dog eligibility flag, not a pairwise matrix.
"""

from typing import Iterable, Mapping, Optional

from walkgroups.domain.models import BookingCandidate, DogProfile


def is_dog_group_eligible(dog: Optional[DogProfile]) -> bool:
    """vaccinated && friendly_with_dogs. Unknown dogs are not eligible."""
    if dog is None:
        return False
    return bool(dog.vaccinated and dog.friendly_with_dogs)


def are_dog_sets_compatible(
    set_a: Iterable[Optional[DogProfile]],
    set_b: Iterable[Optional[DogProfile]] = (),
) -> bool:
    """True iff the union is non-empty and every dog in it is group-eligible."""
    union = list(set_a) + list(set_b)
    if not union:
        return False
    return all(is_dog_group_eligible(d) for d in union)


def candidate_dogs_eligible(
    candidate: BookingCandidate, dogs: Mapping[str, DogProfile]
) -> bool:
    return are_dog_sets_compatible(dogs.get(dog_id) for dog_id in candidate.dog_ids)
