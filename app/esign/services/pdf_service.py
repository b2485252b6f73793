"""
PDF processing service using pypdf and reportlab.

Provides the small document capability the compositor needs: load PDF
bytes, read page sizes, embed raster images, draw images and text onto
existing pages, and serialize the result. Drawing calls are rendered
immediately onto a reportlab overlay canvas for their page; the overlays
are merged onto the pages when the document is saved, so the original page
content is preserved.
"""

import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from PIL import Image
from pypdf import PdfReader, PdfWriter
from pypdf.errors import PdfReadError
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas

# Handle both package imports and standalone imports
try:
    from ..config import get_settings
except ImportError:
    from config import get_settings

from .exceptions import ImageDecodeError, PDFDecodeError

logger = logging.getLogger(__name__)

# Formats tried, in order, when sniffing signature images
IMAGE_FORMATS = ("PNG", "JPEG")

# Standard Type 1 font; only covers the WinAnsi (cp1252) character set
DEFAULT_FONT = "Helvetica"
STANDARD_FONT_ENCODING = "cp1252"

RGB = tuple[float, float, float]


def register_font(path: str | Path) -> str:
    """
    Register a TrueType font with reportlab and return its font name.

    The name is the file stem, e.g. ``NotoSans-Regular``. Registering the
    same file twice is harmless.

    Raises:
        FileNotFoundError: If the font file does not exist.
    """
    font_path = Path(path)
    if not font_path.is_file():
        raise FileNotFoundError(f"Font file not found: {font_path}")

    name = font_path.stem
    if name not in pdfmetrics.getRegisteredFontNames():
        pdfmetrics.registerFont(TTFont(name, str(font_path)))
        logger.info("Registered annotation font %s from %s", name, font_path)
    return name


def unsupported_characters(text: str, font_name: str) -> str:
    """Characters of text that font_name cannot draw, in first-seen order."""
    font = pdfmetrics.getFont(font_name)
    if isinstance(font, TTFont):
        glyphs = font.face.charToGlyph
        missing = (ch for ch in text if ord(ch) not in glyphs)
    else:
        missing = (ch for ch in text if not ch.encode(STANDARD_FONT_ENCODING, "ignore"))
    return "".join(dict.fromkeys(missing))


@dataclass(frozen=True)
class EmbeddedImage:
    """A decoded raster image ready to be drawn onto a page."""

    image: Image.Image
    format: str

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height


class PDFDocument:
    """
    Page-addressable, mutable view of a loaded PDF.

    Pages are zero-indexed. Drawing calls on the same page are rendered in
    call order, so later drawings stack on top of earlier ones. A drawing
    call that fails raises right away; nothing is deferred to save().
    """

    def __init__(self, writer: PdfWriter, font_name: str = DEFAULT_FONT):
        self._writer = writer
        self.font_name = font_name
        self._overlays: dict[int, tuple[io.BytesIO, canvas.Canvas]] = {}

    @property
    def page_count(self) -> int:
        return len(self._writer.pages)

    def page_size(self, page_index: int) -> tuple[float, float]:
        """Return (width, height) of a page in PDF user-space units."""
        box = self._writer.pages[page_index].mediabox
        return float(box.width), float(box.height)

    def embed_image(self, data: bytes) -> EmbeddedImage:
        """
        Decode image bytes, trying PNG first and then JPEG.

        Raises:
            ImageDecodeError: If the bytes are neither a PNG nor a JPEG.
        """
        if not data:
            raise ImageDecodeError("Empty image data")

        errors = []
        for fmt in IMAGE_FORMATS:
            try:
                image = Image.open(io.BytesIO(data), formats=[fmt])
                image.load()
            except (
                OSError,
                EOFError,
                SyntaxError,
                ValueError,
                Image.DecompressionBombError,
            ) as e:
                logger.debug("%s decode failed: %s", fmt, e)
                errors.append(f"{fmt}: {e}")
                continue

            if image.mode not in ("RGB", "RGBA"):
                image = image.convert("RGBA")
            return EmbeddedImage(image=image, format=fmt)

        raise ImageDecodeError("; ".join(errors))

    def draw_image(
        self,
        page_index: int,
        image: EmbeddedImage,
        x: float,
        y: float,
        width: float,
        height: float,
    ) -> None:
        """Draw an embedded image with its lower-left corner at (x, y)."""
        c = self._overlay(page_index)
        c.drawImage(
            ImageReader(image.image), x, y, width=width, height=height, mask="auto"
        )

    def draw_text(
        self,
        page_index: int,
        text: str,
        x: float,
        y: float,
        size: float = 12,
        color: RGB = (0.0, 0.0, 0.0),
        font: str | None = None,
    ) -> None:
        """
        Draw a single line of text with its baseline starting at (x, y).

        Uses the document's annotation font unless font is given. Characters
        the font has no glyph for are logged and render as blanks or boxes.
        """
        font = font or self.font_name
        c = self._overlay(page_index)

        missing = unsupported_characters(text, font)
        if missing:
            logger.warning(
                "Font %s cannot draw %r in %r; configure a Unicode annotation font",
                font,
                missing,
                text,
            )

        c.setFillColorRGB(*color)
        c.setFont(font, size)
        c.drawString(x, y, text)

    def save(self) -> bytes:
        """Merge the drawn overlays onto their pages and serialize the PDF."""
        for page_index in sorted(self._overlays):
            buffer, c = self._overlays[page_index]
            c.showPage()
            c.save()
            overlay = PdfReader(io.BytesIO(buffer.getvalue())).pages[0]
            self._writer.pages[page_index].merge_page(overlay)
        self._overlays.clear()

        buffer = io.BytesIO()
        self._writer.write(buffer)
        return buffer.getvalue()

    def _overlay(self, page_index: int) -> canvas.Canvas:
        """Overlay canvas for a page, created on first use at the page's size."""
        self._check_page(page_index)
        if page_index not in self._overlays:
            buffer = io.BytesIO()
            c = canvas.Canvas(buffer, pagesize=self.page_size(page_index))
            self._overlays[page_index] = (buffer, c)
        return self._overlays[page_index][1]

    def _check_page(self, page_index: int) -> None:
        if not 0 <= page_index < self.page_count:
            raise IndexError(
                f"Page index {page_index} out of range for {self.page_count} pages"
            )


class PDFService:
    """
    Service for loading PDFs into drawable documents.

    Annotation text is drawn with font_name, which must be a standard font
    or one registered with register_font().
    """

    def __init__(self, font_name: str = DEFAULT_FONT):
        self.font_name = font_name

    def load(self, file_bytes: bytes | BinaryIO) -> PDFDocument:
        """
        Parse PDF bytes into a PDFDocument.

        Args:
            file_bytes: PDF file as bytes or file-like object.

        Returns:
            A mutable PDFDocument.

        Raises:
            PDFDecodeError: If the bytes are empty, not a PDF, encrypted,
                or cannot be parsed.
        """
        # Ensure we have bytes
        if hasattr(file_bytes, "read"):
            pdf_bytes = file_bytes.read()
        else:
            pdf_bytes = file_bytes

        if not pdf_bytes:
            raise PDFDecodeError("Empty PDF file provided")

        # The header may be preceded by junk, but only within the first 1024 bytes
        if b"%PDF" not in pdf_bytes[:1024]:
            raise PDFDecodeError("Invalid PDF file: does not start with PDF header")

        try:
            reader = PdfReader(io.BytesIO(pdf_bytes))
            if reader.is_encrypted:
                raise PDFDecodeError("Encrypted PDF files are not supported")
            writer = PdfWriter(clone_from=reader)
            page_count = len(writer.pages)
        except PDFDecodeError:
            raise
        except PdfReadError as e:
            logger.error("PDF syntax error: %s", e)
            raise PDFDecodeError(f"Invalid or corrupted PDF file: {e}") from e
        except Exception as e:
            logger.exception("Unexpected error while parsing PDF")
            raise PDFDecodeError(f"PDF parsing failed: {e}") from e

        if page_count == 0:
            raise PDFDecodeError("PDF has no pages")

        logger.info("Loaded PDF with %d page(s) (%d bytes)", page_count, len(pdf_bytes))
        return PDFDocument(writer, self.font_name)

    def get_page_count(self, file_bytes: bytes | BinaryIO) -> int:
        """
        Get the total number of pages in a PDF.

        Raises:
            PDFDecodeError: If the PDF cannot be parsed.
        """
        return self.load(file_bytes).page_count


# Singleton instance for convenience
_pdf_service: PDFService | None = None


def get_pdf_service() -> PDFService:
    """Get or create the PDF service singleton."""
    global _pdf_service
    if _pdf_service is None:
        settings = get_settings()
        font_name = DEFAULT_FONT
        if settings.annotation_font_path:
            font_name = register_font(settings.annotation_font_path)
        _pdf_service = PDFService(font_name=font_name)
    return _pdf_service
