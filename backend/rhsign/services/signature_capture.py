from __future__ import annotations

import base64
import binascii
import io

from PIL import Image, ImageDraw, ImageFont, ImageOps, UnidentifiedImageError

from rhsign.core.config import Settings, get_settings
from rhsign.models.generated_document import SignatureType
from rhsign.services.errors import EmptySignature, InvalidSignatureImage

CANVAS_SIZE = (600, 200)
CANVAS_PADDING = 20
INK_THRESHOLD = 200
TYPED_SHEAR = 0.25
ALLOWED_IMAGE_MIME_TYPES = {"image/png": "PNG", "image/jpeg": "JPEG", "image/jpg": "JPEG"}
ALLOWED_IMAGE_FORMATS = {"PNG", "JPEG"}
_FALLBACK_FONTS = ("DejaVuSerif-Italic.ttf", "DejaVuSans-Oblique.ttf", "LiberationSerif-Italic.ttf")


def decode_image_payload(payload: str | bytes) -> tuple[bytes, str | None]:
    """Aceita data URL ou base64 puro; retorna os bytes e o MIME declarado."""
    if isinstance(payload, (bytes, bytearray)):
        return bytes(payload), None
    data = (payload or "").strip()
    if not data:
        raise EmptySignature("Imagem de assinatura vazia.")
    mime: str | None = None
    encoded = data
    if data.startswith("data:"):
        try:
            header, encoded = data.split(",", 1)
        except ValueError as exc:
            raise InvalidSignatureImage("Imagem de assinatura em formato inválido.") from exc
        if ";base64" not in header:
            raise InvalidSignatureImage("Imagem de assinatura deve estar codificada em base64.")
        mime = header.split(";", 1)[0].split(":", 1)[1].lower() or None
    try:
        content = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidSignatureImage("Imagem de assinatura inválida.") from exc
    if not content:
        raise EmptySignature("Imagem de assinatura vazia.")
    return content, mime


def to_data_url(png: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png).decode("ascii")


def _open_image(content: bytes) -> Image.Image:
    try:
        image = Image.open(io.BytesIO(content))
        image.load()
    except (UnidentifiedImageError, OSError, Image.DecompressionBombError) as exc:
        raise InvalidSignatureImage("Não foi possível ler a imagem de assinatura.") from exc
    if image.format not in ALLOWED_IMAGE_FORMATS:
        raise InvalidSignatureImage(f"Formato de imagem não suportado: {image.format}.")
    return image


def _flatten(image: Image.Image) -> Image.Image:
    """Compõe a imagem sobre fundo branco em RGB."""
    rgba = image.convert("RGBA")
    background = Image.new("RGBA", rgba.size, (255, 255, 255, 255))
    return Image.alpha_composite(background, rgba).convert("RGB")


def _ink_bbox(image: Image.Image) -> tuple[int, int, int, int] | None:
    mask = image.convert("L").point(lambda value: 255 if value < INK_THRESHOLD else 0)
    return mask.getbbox()


def _place_on_canvas(image: Image.Image) -> bytes:
    bbox = _ink_bbox(image)
    if bbox is None:
        raise EmptySignature("Assinatura sem traços.")
    cropped = image.crop(bbox)
    inner = (CANVAS_SIZE[0] - 2 * CANVAS_PADDING, CANVAS_SIZE[1] - 2 * CANVAS_PADDING)
    fitted = ImageOps.contain(cropped, inner)
    canvas = Image.new("RGB", CANVAS_SIZE, (255, 255, 255))
    offset = ((CANVAS_SIZE[0] - fitted.width) // 2, (CANVAS_SIZE[1] - fitted.height) // 2)
    canvas.paste(fitted, offset)
    buffer = io.BytesIO()
    canvas.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()


def parse_signature_type(value: SignatureType | str) -> SignatureType:
    try:
        return SignatureType(value)
    except ValueError as exc:
        raise InvalidSignatureImage(f"Tipo de assinatura desconhecido: {value}.") from exc


class SignatureCapture:
    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()

    def normalize(self, signature_type: SignatureType | str, payload: str | bytes | None) -> bytes:
        kind = parse_signature_type(signature_type)

        if kind == SignatureType.TYPED:
            return self._render_typed(payload if isinstance(payload, str) else "")
        if payload is None:
            raise EmptySignature("Assinatura não informada.")
        return self._normalize_image(kind, payload)

    def _normalize_image(self, kind: SignatureType, payload: str | bytes) -> bytes:
        content, mime = decode_image_payload(payload)
        if len(content) > self.settings.signature_image_max_bytes:
            raise InvalidSignatureImage("Imagem de assinatura excede o tamanho máximo permitido.")
        if mime and mime not in ALLOWED_IMAGE_MIME_TYPES:
            raise InvalidSignatureImage(f"Tipo de imagem não suportado: {mime}.")
        image = _open_image(content)
        if kind == SignatureType.UPLOADED and mime and ALLOWED_IMAGE_MIME_TYPES[mime] != image.format:
            raise InvalidSignatureImage("Conteúdo da imagem não corresponde ao tipo declarado.")
        return _place_on_canvas(_flatten(image))

    def _load_font(self, size: int) -> ImageFont.ImageFont | ImageFont.FreeTypeFont:
        candidates = [self.settings.typed_signature_font_path] if self.settings.typed_signature_font_path else []
        candidates.extend(_FALLBACK_FONTS)
        for candidate in candidates:
            try:
                return ImageFont.truetype(candidate, size)
            except OSError:
                continue
        return ImageFont.load_default(size=size)

    def _render_typed(self, name: str) -> bytes:
        text = " ".join((name or "").split())
        if not text:
            raise EmptySignature("Nome da assinatura em branco.")

        width, height = CANVAS_SIZE
        max_width = width - 2 * CANVAS_PADDING - int(TYPED_SHEAR * height)
        layer = Image.new("L", CANVAS_SIZE, 255)
        draw = ImageDraw.Draw(layer)

        font = self._load_font(24)
        for size in range(96, 23, -8):
            font = self._load_font(size)
            left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
            if right - left <= max_width and bottom - top <= height - 2 * CANVAS_PADDING:
                break
        left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
        position = ((width - (right - left)) / 2 - left, (height - (bottom - top)) / 2 - top)
        draw.text(position, text, font=font, fill=0)

        slanted = layer.transform(
            CANVAS_SIZE,
            Image.Transform.AFFINE,
            (1, TYPED_SHEAR, -TYPED_SHEAR * height / 2, 0, 1, 0),
            resample=Image.Resampling.BICUBIC,
            fillcolor=255,
        )
        return _place_on_canvas(slanted.convert("RGB"))
