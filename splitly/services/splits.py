from typing import Dict, List, Optional

from ..errors import ValidationFailed
from .engine import EPSILON, SPLIT_TYPES


def split_equal(amount: float, participants: List[str]) -> Dict[str, float]:
    if not participants:
        raise ValidationFailed("Please select at least one participant for this expense.")
    per = round(amount / len(participants), 10)
    # last participant absorbs the rounding residue so shares sum to the total
    shares = {m: per for m in participants}
    residue = round(amount - per * len(participants), 10)
    if residue != 0:
        last = participants[-1]
        shares[last] = round(shares[last] + residue, 10)
    return shares


def validate_custom(amount: float, shares: Dict[str, float]):
    if not shares:
        raise ValidationFailed("Please select at least one participant for this expense.")
    if any(v < 0 for v in shares.values()):
        raise ValidationFailed("Shares cannot be negative.")
    s = sum(shares.values())
    if abs(s - amount) > EPSILON:
        raise ValidationFailed(f"The sum of shares ({s:.2f}) must equal the total amount ({amount:.2f}).")


def scale_shares(shares: Dict[str, float], ratio: float, total: Optional[float] = None) -> Dict[str, float]:
    scaled = {m: v * ratio for m, v in shares.items()}
    if total is not None and scaled:
        # last share absorbs the drift so the shares sum exactly to total
        last = list(scaled)[-1]
        scaled[last] = scaled[last] + (total - sum(scaled.values()))
    return scaled


def recalculate_shares(shares: Dict[str, float], old_total: float, new_total: float, split_type: str) -> Dict[str, float]:
    if split_type not in SPLIT_TYPES:
        raise ValidationFailed(f"Unknown split type {split_type!r}.")
    if split_type == "equal":
        return split_equal(new_total, list(shares))
    if old_total <= 0:
        raise ValidationFailed("Cannot rescale shares of an expense with no total.")
    return scale_shares(shares, new_total / old_total, total=new_total)
