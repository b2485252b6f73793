"""
Coordinate mapping from display space to PDF page space.

The signing client renders every page scaled to a fixed width of
REFERENCE_WIDTH units, keeping the page's aspect ratio, with the origin at
the top-left corner. PDF pages use their own intrinsic size with the origin
at the bottom-left. Both sides must agree on REFERENCE_WIDTH; a mismatch
silently misplaces every signature, so the value is published together with
DISPLAY_SPACE_VERSION and bumped in lockstep with the client.
"""

from dataclasses import dataclass

REFERENCE_WIDTH = 600.0
DISPLAY_SPACE_VERSION = 1

SIGNATURE_WIDTH = 120.0
SIGNATURE_HEIGHT = 40.0

FALLBACK_WIDTH = 200.0
FALLBACK_HEIGHT = 20.0


@dataclass(frozen=True)
class Placement:
    """
    Result of mapping one click point onto a page.

    Attributes:
        pdf_x: Click point in page space, before centering and clamping.
        pdf_y: Click point in page space, before centering and clamping.
        x: Lower-left corner of the annotation box after clamping.
        y: Lower-left corner of the annotation box after clamping.
        scale: Display-to-page scale factor used on both axes.
    """

    pdf_x: float
    pdf_y: float
    x: float
    y: float
    scale: float


def clamp(value: float, lower: float, upper: float) -> float:
    """Clamp value into [lower, upper]; upper never drops below lower."""
    upper = max(lower, upper)
    return max(lower, min(upper, value))


def display_height(page_width: float, page_height: float) -> float:
    """Height of a page when rendered REFERENCE_WIDTH units wide."""
    return REFERENCE_WIDTH * (page_height / page_width)


def page_scale(page_width: float, page_height: float) -> float:
    """
    Display-to-page scale factor for one page.

    The vertical factor, page_height / display_height, reduces to the
    horizontal one because display_height keeps the page's aspect ratio.
    Each page gets its own factor since pages may differ in size.
    """
    if page_width <= 0 or page_height <= 0:
        raise ValueError(f"Invalid page size: {page_width}x{page_height}")
    return page_width / REFERENCE_WIDTH


def to_page_space(
    x: float, y: float, page_width: float, page_height: float
) -> tuple[float, float, float]:
    """Convert a display-space point to (pdf_x, pdf_y, scale) with the y axis flipped."""
    scale = page_scale(page_width, page_height)
    return x * scale, page_height - y * scale, scale


def map_signature(
    x: float, y: float, page_width: float, page_height: float
) -> Placement:
    """
    Place a SIGNATURE_WIDTH x SIGNATURE_HEIGHT box centered on a click point.

    The box is clamped so it stays fully on the page. On pages narrower or
    shorter than the box it is pinned to the origin.
    """
    pdf_x, pdf_y, scale = to_page_space(x, y, page_width, page_height)
    final_x = clamp(pdf_x - SIGNATURE_WIDTH / 2, 0.0, page_width - SIGNATURE_WIDTH)
    final_y = clamp(pdf_y - SIGNATURE_HEIGHT / 2, 0.0, page_height - SIGNATURE_HEIGHT)
    return Placement(pdf_x=pdf_x, pdf_y=pdf_y, x=final_x, y=final_y, scale=scale)


def map_fallback(
    x: float, y: float, page_width: float, page_height: float
) -> Placement:
    """
    Place the text-only fallback annotation at the click point.

    Unlike map_signature the anchor is not centered. The baseline is kept
    FALLBACK_HEIGHT away from the top and bottom edges and the text start
    leaves FALLBACK_WIDTH of room before the right edge.
    """
    pdf_x, pdf_y, scale = to_page_space(x, y, page_width, page_height)
    final_x = clamp(pdf_x, 0.0, page_width - FALLBACK_WIDTH)
    final_y = clamp(pdf_y, FALLBACK_HEIGHT, page_height - FALLBACK_HEIGHT)
    return Placement(pdf_x=pdf_x, pdf_y=pdf_y, x=final_x, y=final_y, scale=scale)
