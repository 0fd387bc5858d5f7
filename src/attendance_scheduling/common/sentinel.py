from __future__ import annotations


class _Unset:
    """Marker for "field not supplied" in partial updates.

    ``None`` is a real value for several nullable columns (e.g. clearing an
    assignment end date), so absence needs its own marker.
    """

    _instance: "_Unset | None" = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset()


def is_set(value: object) -> bool:
    return value is not UNSET
