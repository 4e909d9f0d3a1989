from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class Classification:
    classification: str
    awarded: bool


CLASSIFICATION_BANDS: List[Tuple[float, str]] = [
    (9.0, "First Class – Exemplary"),
    (7.5, "First Class with Distinction"),
    (6.0, "First Class"),
    (5.0, "Second Class"),
]

NOT_AWARDED = Classification("Not Awarded", awarded=False)


def classify(cgpa: float) -> Classification:
    # No domain check: values above 10 land in the top band, negatives in Not Awarded.
    for threshold, label in CLASSIFICATION_BANDS:
        if cgpa >= threshold:
            return Classification(label, awarded=True)
    return NOT_AWARDED
