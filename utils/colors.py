# ============================================================
# FILE: utils/colors.py
# ============================================================

from typing import Tuple


def parse_color(value: str) -> Tuple[int, int, int]:
    """Parse '#rrggbb' or '#rgb' into an (r, g, b) tuple."""
    text = value.strip().lstrip('#')
    if len(text) == 3:
        text = ''.join(c * 2 for c in text)
    if len(text) != 6:
        raise ValueError(f"Unsupported colour value: {value!r}")
    try:
        return tuple(int(text[i:i + 2], 16) for i in (0, 2, 4))
    except ValueError:
        raise ValueError(f"Unsupported colour value: {value!r}") from None
