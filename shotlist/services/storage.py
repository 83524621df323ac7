import base64
import binascii
import io
import json
import mimetypes
import os
import re
from typing import Iterable, List, Optional, Tuple

from PIL import Image

from shotlist.types import GeneratedShot, InvalidImageError, ScriptAnalysisResult

DATA_URL_RE = re.compile(r"^data:(.+);base64,(.+)$", re.DOTALL)


def parse_data_url(data_url: str) -> Tuple[str, str]:
    """
    Split a ``data:<mime>;base64,<payload>`` string into (mime, payload).

    Raises InvalidImageError when the string does not have that shape or the
    payload is not valid base64.
    """
    if not isinstance(data_url, str):
        raise InvalidImageError("Invalid data URL format")
    m = DATA_URL_RE.match(data_url.strip())
    if not m:
        raise InvalidImageError("Invalid data URL format")
    mime, payload = m.group(1), m.group(2)
    try:
        base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidImageError(f"Invalid data URL payload: {e}") from e
    return mime, payload


def validate_reference_image(reference_image: Optional[str]) -> Optional[str]:
    """Return the stripped reference image, ``None`` when absent; raise when malformed."""
    if reference_image is None or not str(reference_image).strip():
        return None
    parse_data_url(reference_image)
    return reference_image.strip()


def bytes_to_data_url(data: bytes, mime: str = "image/png") -> str:
    b64 = base64.b64encode(data).decode("ascii")
    return f"data:{mime};base64,{b64}"


def data_url_to_bytes_and_mime(data_url: str) -> Tuple[bytes, str]:
    """
    Convert a data URL (data:<mime>;base64,...) to raw bytes and mime type.
    """
    mime, payload = parse_data_url(data_url)
    return base64.b64decode(payload), mime


def compress_image_bytes_to_jpeg_data_url(data: bytes, *, max_width: int = 1024, quality: int = 85) -> str:
    """
    Convert an uploaded reference image to a reasonably sized JPEG data URL.

    - Ensures RGB colorspace
    - Resizes to max_width while preserving aspect ratio
    - Uses JPEG quality and optimization for smaller payloads
    """
    img = Image.open(io.BytesIO(data))
    if img.mode in ("RGBA", "P", "LA"):
        img = img.convert("RGB")
    if img.width > max_width:
        new_height = int(img.height * (max_width / img.width))
        img = img.resize((max_width, new_height), Image.LANCZOS)
    buffer = io.BytesIO()
    img.save(buffer, format="JPEG", quality=quality, optimize=True)
    return bytes_to_data_url(buffer.getvalue(), mime="image/jpeg")


def _extension_for(mime: str) -> str:
    if mime == "image/jpeg":
        return ".jpg"
    return mimetypes.guess_extension(mime) or ".png"


def shot_file_name(shot: GeneratedShot) -> str:
    _, mime = data_url_to_bytes_and_mime(shot.image_url)
    return f"shot_{shot.shot_number}{_extension_for(mime)}"


def save_shot_image(shot: GeneratedShot, directory: str) -> str:
    """Write one generated shot image into ``directory`` and return its path."""
    os.makedirs(directory, exist_ok=True)
    data, _ = data_url_to_bytes_and_mime(shot.image_url)
    path = os.path.join(directory, shot_file_name(shot))
    with open(path, "wb") as f:
        f.write(data)
    return path


def export_shot_list(
    analysis: ScriptAnalysisResult,
    shots: Iterable[GeneratedShot],
    directory: str,
) -> List[str]:
    """
    Save every shot image plus a ``shot_list.json`` manifest.

    The manifest carries the character/product descriptions and each shot's
    fields with the image file name instead of the (large) data URL.
    """
    os.makedirs(directory, exist_ok=True)
    paths: List[str] = []
    entries = []
    for shot in shots:
        path = save_shot_image(shot, directory)
        paths.append(path)
        entry = shot.description_part().to_dict()
        entry["image_file"] = os.path.basename(path)
        entries.append(entry)
    manifest = {
        "character_descriptions": [c.to_dict() for c in analysis.character_descriptions],
        "product_descriptions": [p.to_dict() for p in analysis.product_descriptions],
        "shots": entries,
    }
    manifest_path = os.path.join(directory, "shot_list.json")
    with open(manifest_path, "w", encoding="utf-8") as f:
        json.dump(manifest, f, indent=2, ensure_ascii=False)
    paths.append(manifest_path)
    return paths
