"""
Document intake service.

Turns an uploaded photo (or a scanned PDF) into the images sent to the
extraction provider. Uses Pillow for images and pdf2image (poppler) for PDFs.
"""

import base64
import binascii
import io
import logging
import mimetypes
import re
from dataclasses import dataclass

from PIL import Image, ImageOps, UnidentifiedImageError

from ..config import get_settings

logger = logging.getLogger(__name__)

UNSUPPORTED_FILE_MESSAGE = "Please upload a valid image file (JPEG, PNG, WEBP)."

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?:;[^,]*)?,", re.IGNORECASE)
_GENERIC_MIME_TYPES = {"", "application/octet-stream", "binary/octet-stream"}

# Pillow format name -> MIME type for re-encoded images
_FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "WEBP": "image/webp",
    "GIF": "image/gif",
}


class DocumentError(Exception):
    """Raised when an uploaded document cannot be used."""

    status_code: int = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.user_message = message


class DocumentTooLargeError(DocumentError):
    """Upload exceeds the configured size limit."""

    status_code = 413


class UnsupportedDocumentError(DocumentError):
    """Upload is neither a readable image nor a PDF."""

    status_code = 415

    def __init__(self, message: str = UNSUPPORTED_FILE_MESSAGE):
        super().__init__(message)


@dataclass(frozen=True)
class DocumentImage:
    """Image bytes ready to be sent inline to the provider."""

    data: bytes
    mime_type: str


def decode_base64_document(data: str, mime_type: str | None = None) -> tuple[bytes, str | None]:
    """
    Decode a base64 document, accepting a ``data:<mime>;base64,`` prefix.

    Returns:
        Tuple of (raw bytes, MIME type). The MIME type comes from the
        argument, else from the data URL prefix, else None.

    Raises:
        DocumentError: If the payload is not valid base64.
    """
    data = data.strip()
    match = _DATA_URL_RE.match(data)
    if match:
        if not mime_type and match.group("mime"):
            mime_type = match.group("mime")
        data = data[match.end():]

    try:
        raw = base64.b64decode("".join(data.split()), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DocumentError("Invalid base64 document data") from e

    return raw, mime_type


class DocumentService:
    """
    Service preparing uploaded documents for extraction.

    Images are verified and downscaled when oversized; PDFs are rendered
    page by page.
    """

    def __init__(
        self,
        max_upload_bytes: int = 10 * 1024 * 1024,
        max_image_dimension: int = 2048,
        max_pdf_pages: int = 3,
        dpi: int = 200,
    ):
        """
        Initialize the document service.

        Args:
            max_upload_bytes: Largest accepted upload.
            max_image_dimension: Longest image side before downscaling.
            max_pdf_pages: Number of leading PDF pages to render.
            dpi: Resolution for PDF to image conversion.
        """
        self.max_upload_bytes = max_upload_bytes
        self.max_image_dimension = max_image_dimension
        self.max_pdf_pages = max_pdf_pages
        self.dpi = dpi

    def resolve_mime_type(
        self, file_bytes: bytes, mime_type: str | None, filename: str | None = None
    ) -> str:
        """Pick the MIME type to trust, guessing from the filename or content."""
        mime_type = (mime_type or "").split(";")[0].strip().lower()
        if mime_type in _GENERIC_MIME_TYPES and filename:
            guessed, _ = mimetypes.guess_type(filename)
            mime_type = (guessed or "").lower()
        if file_bytes[:4] == b"%PDF":
            return "application/pdf"
        return mime_type

    def prepare(
        self,
        file_bytes: bytes,
        mime_type: str | None = None,
        filename: str | None = None,
    ) -> list[DocumentImage]:
        """
        Validate an upload and return the images to send for extraction.

        Args:
            file_bytes: Uploaded file content.
            mime_type: Declared MIME type, if any.
            filename: Original filename, used to guess a missing MIME type.

        Returns:
            One DocumentImage for a photo, one per rendered page for a PDF.

        Raises:
            DocumentError: If the upload is empty, too large or unsupported.
        """
        if not file_bytes:
            raise DocumentError("Empty file provided")

        if len(file_bytes) > self.max_upload_bytes:
            raise DocumentTooLargeError(
                f"File is too large ({len(file_bytes)} bytes). "
                f"Maximum size is {self.max_upload_bytes} bytes."
            )

        resolved = self.resolve_mime_type(file_bytes, mime_type, filename)
        logger.info(
            "Preparing document %s (%d bytes, %s)",
            filename or "<unnamed>",
            len(file_bytes),
            resolved or "unknown type",
        )

        if resolved == "application/pdf":
            return self.convert_pdf(file_bytes)
        if resolved.startswith("image/"):
            return [self.prepare_image(file_bytes, resolved)]

        raise UnsupportedDocumentError()

    def prepare_image(self, file_bytes: bytes, mime_type: str) -> DocumentImage:
        """
        Verify an image and downscale it if its longest side is too large.

        Downscaled images are rotated upright from their EXIF orientation
        first, since re-encoding drops the tag.

        Raises:
            DocumentTooLargeError: If the pixel count exceeds Pillow's limit.
            UnsupportedDocumentError: If Pillow cannot read the image.
        """
        try:
            with Image.open(io.BytesIO(file_bytes)) as check:
                check.verify()
            image = Image.open(io.BytesIO(file_bytes))
            image.load()
        except Image.DecompressionBombError as e:
            logger.warning("Rejected oversized image upload: %s", e)
            raise DocumentTooLargeError(
                "Image dimensions are too large. Please upload a smaller photo."
            ) from e
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            logger.warning("Rejected unreadable image upload: %s", e)
            raise UnsupportedDocumentError() from e

        if max(image.size) <= self.max_image_dimension:
            return DocumentImage(data=file_bytes, mime_type=mime_type)

        image_format = image.format if image.format in _FORMAT_MIME_TYPES else "PNG"
        image = ImageOps.exif_transpose(image)

        ratio = self.max_image_dimension / max(image.size)
        new_size = (max(1, int(image.size[0] * ratio)), max(1, int(image.size[1] * ratio)))
        logger.warning("Downscaling image from %s to %s", image.size, new_size)

        resized = image.resize(new_size, Image.Resampling.LANCZOS)
        if image_format == "JPEG" and resized.mode not in ("RGB", "L"):
            resized = resized.convert("RGB")

        return DocumentImage(
            data=self.image_to_bytes(resized, format=image_format),
            mime_type=_FORMAT_MIME_TYPES[image_format],
        )

    def convert_pdf(self, file_bytes: bytes) -> list[DocumentImage]:
        """
        Render the leading pages of a PDF to PNG images.

        Raises:
            UnsupportedDocumentError: If the PDF cannot be rendered.
        """
        from pdf2image import convert_from_bytes
        from pdf2image.exceptions import (
            PDFInfoNotInstalledError,
            PDFPageCountError,
            PDFSyntaxError,
        )

        try:
            logger.info(
                "Converting PDF to images (dpi=%d, pages=1-%d)",
                self.dpi,
                self.max_pdf_pages,
            )
            pages = convert_from_bytes(
                file_bytes,
                dpi=self.dpi,
                fmt="png",
                first_page=1,
                last_page=self.max_pdf_pages,
            )
        except PDFInfoNotInstalledError as e:
            logger.error("Poppler not installed: %s", e)
            raise UnsupportedDocumentError(
                "PDF uploads are not available on this server. Please upload an image."
            ) from e
        except (PDFPageCountError, PDFSyntaxError) as e:
            logger.error("Invalid PDF upload: %s", e)
            raise UnsupportedDocumentError("Invalid or corrupted PDF file.") from e
        except Exception as e:
            logger.exception("Unexpected error during PDF conversion")
            raise UnsupportedDocumentError("Invalid or corrupted PDF file.") from e

        if not pages:
            raise UnsupportedDocumentError("No pages found in PDF.")

        logger.info("Converted %d PDF page(s)", len(pages))
        return [
            DocumentImage(data=self.image_to_bytes(page, format="PNG"), mime_type="image/png")
            for page in pages
        ]

    def image_to_bytes(
        self, image: Image.Image, format: str = "PNG", quality: int = 90
    ) -> bytes:
        """
        Convert a PIL Image to bytes.

        Args:
            image: PIL Image to convert.
            format: Output format (PNG, JPEG, etc.).
            quality: Quality for lossy formats (1-100).

        Returns:
            Image as bytes.
        """
        buffer = io.BytesIO()
        save_kwargs = {"format": format}
        if format.upper() in ("JPEG", "JPG", "WEBP"):
            save_kwargs["quality"] = quality
        image.save(buffer, **save_kwargs)
        return buffer.getvalue()


_document_service: DocumentService | None = None


def get_document_service() -> DocumentService:
    """Get or create the document service singleton."""
    global _document_service
    if _document_service is None:
        settings = get_settings()
        _document_service = DocumentService(
            max_upload_bytes=settings.max_upload_bytes,
            max_image_dimension=settings.max_image_dimension,
            max_pdf_pages=settings.max_pdf_pages,
        )
    return _document_service
