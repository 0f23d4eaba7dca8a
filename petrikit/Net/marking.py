from __future__ import annotations

from collections.abc import Mapping
from typing import Dict, Iterable, Iterator, Optional, Tuple, Union

MarkingLike = Union["MarkingData", Mapping[str, int], Iterable[Tuple[str, int]]]


class MarkingData(Mapping):
    """
    Token distribution over the places of a running computation.

    Immutable value type: place id -> positive token count. Missing places
    hold zero tokens and zero entries are dropped on construction, so two
    markings compare equal whenever they agree on every place. Every
    transformation returns a new instance.

    :param tokens: Initial content, either a mapping ``place_id -> count`` or
        an iterable of ``(place_id, count)`` pairs.
    :type tokens: Optional[MarkingLike]
    :raises ValueError: If any count is negative.

    Examples
    --------
    .. code-block:: python

        m0 = MarkingData({"PInitial": 1})
        m1 = m0.remove_tokens("PInitial", 1).add_tokens("P1", 1)
        assert m0["PInitial"] == 1 and m1.tokens("PInitial") == 0
    """

    __slots__ = ("_tokens",)

    def __init__(self, tokens: Optional[MarkingLike] = None) -> None:
        self._tokens: Dict[str, int] = self._normalize(tokens or {})

    @staticmethod
    def _normalize(obj: MarkingLike) -> Dict[str, int]:
        items = obj.items() if isinstance(obj, Mapping) else obj
        out: Dict[str, int] = {}
        for place_id, count in items:
            count = int(count)
            if count < 0:
                raise ValueError(f"Token count cannot be negative: {place_id}={count}")
            if count:
                out[str(place_id)] = out.get(str(place_id), 0) + count
        return out

    # ---- Mapping API ----
    def __getitem__(self, place_id: str) -> int:
        return self._tokens.get(place_id, 0)

    def __iter__(self) -> Iterator[str]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __contains__(self, place_id: object) -> bool:
        return place_id in self._tokens

    def __eq__(self, other: object) -> bool:
        if isinstance(other, MarkingData):
            return self._tokens == other._tokens
        if isinstance(other, Mapping):
            try:
                return self._tokens == self._normalize(other)
            except (TypeError, ValueError):
                return False
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted(self._tokens.items())))

    # ---- queries ----
    def tokens(self, place_id: str) -> int:
        """Number of tokens in ``place_id`` (0 when absent)."""
        return self._tokens.get(place_id, 0)

    def has_tokens(self, place_id: str) -> bool:
        return self.tokens(place_id) > 0

    def covers(self, required: Mapping[str, int]) -> bool:
        """
        Check that every place holds at least the required count.

        :param required: Mapping ``place_id -> minimum tokens``.
        :returns: True if all requirements are met.
        """
        for place_id, count in required.items():
            if self.tokens(place_id) < count:
                return False
        return True

    def total(self) -> int:
        return sum(self._tokens.values())

    # ---- transformations ----
    def with_tokens(self, place_id: str, count: int) -> "MarkingData":
        """Return a copy in which ``place_id`` holds exactly ``count`` tokens."""
        if count < 0:
            raise ValueError("Token count cannot be negative.")
        data = dict(self._tokens)
        data[place_id] = count
        return MarkingData(data)

    def add_tokens(self, place_id: str, amount: int) -> "MarkingData":
        if amount <= 0:
            raise ValueError("Amount to add must be positive.")
        return self.with_tokens(place_id, self.tokens(place_id) + amount)

    def remove_tokens(self, place_id: str, amount: int) -> "MarkingData":
        if amount <= 0:
            raise ValueError("Amount to remove must be positive.")
        current = self.tokens(place_id)
        if current < amount:
            raise ValueError(
                f"Cannot remove {amount} tokens from place {place_id}, "
                f"which only has {current} tokens."
            )
        return self.with_tokens(place_id, current - amount)

    def to_dict(self) -> Dict[str, int]:
        return dict(self._tokens)

    def __repr__(self) -> str:
        body = ", ".join(f"{k}:{v}" for k, v in sorted(self._tokens.items()))
        return f"MarkingData({{{body}}})"
