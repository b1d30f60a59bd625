"""Color schemes and color utilities for the UI."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List

from typist.core.matching import CharVerdict


@dataclass(frozen=True)
class ColorScheme:
    name: str
    bg: str
    border: str
    ref: str
    main: str
    dimmer_main: str
    text: str
    chart: str
    correct: str
    corrected: str
    incorrect: str

    def verdict_color(self, verdict: CharVerdict) -> str:
        """Text color for a reference character with the given verdict."""
        if verdict is CharVerdict.CORRECT:
            return self.correct
        if verdict is CharVerdict.CORRECTED:
            return self.corrected
        if verdict is CharVerdict.INCORRECT:
            return self.incorrect
        return self.ref


SCHEMES: Dict[str, ColorScheme] = {
    s.name: s
    for s in (
        ColorScheme("Default", "#0A0A0A", "#643C00", "#646464", "#FF9B00", "#B46400",
                    "#C8C8C8", "#965000", "#D2C8C8", "#FF9B00", "#C81E1E"),
        ColorScheme("Dark", "#0A0A0A", "#3C3C3C", "#505050", "#B4B4B4", "#787878",
                    "#C8C8C8", "#B4B4B4", "#C8FFFF", "#643C00", "#C81E1E"),
        ColorScheme("Light", "#FAFAFA", "#C8B4A0", "#787878", "#505050", "#3C3C3C",
                    "#000000", "#505050", "#96C896", "#966400", "#C81E1E"),
        ColorScheme("Monochrome", "#000000", "#C8FFFF", "#505050", "#C8FFFF", "#808080",
                    "#C8C8C8", "#C8FFFF", "#C8FFFF", "#C83232", "#C81E1E"),
        ColorScheme("Ocean", "#0A1E32", "#006496", "#6496C8", "#64C8FF", "#3C8CC8",
                    "#C8E6FF", "#64C8FF", "#C8FFFF", "#B464FF", "#FF00C8"),
        ColorScheme("Ocean Dark", "#00050A", "#003250", "#464650", "#50B4E6", "#3278B4",
                    "#B4DCFF", "#50B4E6", "#C8FFFF", "#B464FF", "#FF00C8"),
        ColorScheme("Forest", "#142814", "#326432", "#649664", "#96FF96", "#64B464",
                    "#C8FFC8", "#96FF96", "#C8FFFF", "#FF6464", "#C81E1E"),
        ColorScheme("Forest Dark", "#0A0A0A", "#3C783C", "#465046", "#64C864", "#96E664",
                    "#B4FFB4", "#64C864", "#C8FFFF", "#B46400", "#961E1E"),
        ColorScheme("Pink", "#070002", "#641446", "#504646", "#FF1493", "#C80A78",
                    "#C8C8C8", "#641446", "#C8FFFF", "#FF6464", "#FF1E1E"),
    )
}

DEFAULT_SCHEME = "Default"


def scheme_names() -> List[str]:
    return list(SCHEMES)


def get_scheme(name: str) -> ColorScheme:
    """Look up a scheme by name, falling back to the default one."""
    return SCHEMES.get(name, SCHEMES[DEFAULT_SCHEME])


def blend_hex(a: str, b: str, t: float) -> str:
    """Blend two #RRGGBB colors. t=0 -> a, t=1 -> b."""
    try:
        a = a.strip()
        b = b.strip()
        if not (a.startswith("#") and b.startswith("#") and len(a) == 7 and len(b) == 7):
            return a
        t = max(0.0, min(1.0, float(t)))
        ar, ag, ab = int(a[1:3], 16), int(a[3:5], 16), int(a[5:7], 16)
        br, bg, bb = int(b[1:3], 16), int(b[3:5], 16), int(b[5:7], 16)
        r = int(ar + (br - ar) * t)
        g = int(ag + (bg - ag) * t)
        bl = int(ab + (bb - ab) * t)
        return f"#{r:02X}{g:02X}{bl:02X}"
    except ValueError:
        return a
