"""
Overall band aggregation across the four IELTS modules.
"""

from typing import Mapping, Optional

from ieltsmock.core.scoring.bands import ielts_round

MODULE_KEYS = ("listening", "reading", "writing", "speaking")


def aggregate_overall_band(module_bands: Mapping[str, Optional[float]]) -> float:
    """
    Average the module bands that are present and round to a half band.

    Missing or None modules are excluded rather than counted as zero.

    Args:
        module_bands: Bands keyed by lower-case module name

    Returns:
        The overall band, or 0.0 when no module band is present

    Raises:
        ValueError: If a key is not a module name
    """
    unknown = set(module_bands) - set(MODULE_KEYS)
    if unknown:
        raise ValueError(f"Unknown module keys: {', '.join(sorted(unknown))}")

    present = [band for band in module_bands.values() if band is not None]
    if not present:
        return 0.0
    return ielts_round(sum(present) / len(present))
