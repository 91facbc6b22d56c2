import io
import logging

from PIL import Image, ImageOps

from .config import DEFAULT_SETTINGS
from .constants import PHOTO_MIME
from .errors import ImageProcessingError
from .models import PhotoAttachment, new_photo_id
from .utils import now_ms

logger = logging.getLogger("Agenda")


def _jpeg_quality(quality):
    # Accept 0-1 factors (canvas style) as well as Pillow's 1-95 scale.
    q = float(quality)
    if q <= 1.0:
        q *= 100.0
    return max(1, min(95, int(round(q))))


def compress_image(raw, max_dimension=1400, quality=0.82):
    """Re-encode *raw* image bytes as JPEG with the longest side <= *max_dimension*.

    Images are never upscaled. EXIF orientation is applied before resizing and
    transparency is flattened onto white.
    """
    if not raw:
        raise ImageProcessingError("empty image")

    try:
        with Image.open(io.BytesIO(raw)) as src:
            img = ImageOps.exif_transpose(src)
            if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
                rgba = img.convert("RGBA")
                img = Image.new("RGB", rgba.size, (255, 255, 255))
                img.paste(rgba, mask=rgba.split()[-1])
            elif img.mode != "RGB":
                img = img.convert("RGB")

            w, h = img.size
            if w <= 0 or h <= 0:
                raise ImageProcessingError("invalid image size")

            scale = min(1.0, max_dimension / float(max(w, h)))
            if scale < 1.0:
                new_size = (max(1, int(round(w * scale))), max(1, int(round(h * scale))))
                img = img.resize(new_size, Image.Resampling.LANCZOS)

            out = io.BytesIO()
            img.save(out, format="JPEG", quality=_jpeg_quality(quality), optimize=True)
            return out.getvalue()
    except ImageProcessingError:
        raise
    except (OSError, ValueError, Image.DecompressionBombError) as exc:
        raise ImageProcessingError(f"cannot process image: {exc}") from exc


def attach(store, day_date, files, settings=None):
    """Compress and append each ``(name, bytes)`` in *files* to the day's photos.

    All-or-nothing: the day is written once, after every file compressed, so
    a failure leaves the stored day as it was.
    """
    settings = settings or DEFAULT_SETTINGS
    day = store.ensure_exists(day_date)

    added = []
    for name, raw in files:
        blob = compress_image(
            raw,
            max_dimension=settings.get("image_max_dimension", DEFAULT_SETTINGS["image_max_dimension"]),
            quality=settings.get("image_quality", DEFAULT_SETTINGS["image_quality"]),
        )
        photo_id = new_photo_id()
        added.append(
            PhotoAttachment(
                id=photo_id,
                name=(name or "").strip() or f"foto-{photo_id}.jpg",
                type=PHOTO_MIME,
                blob=blob,
                created_at=now_ms(),
            )
        )

    if not added:
        return []

    day.photos.extend(added)
    day.touch()
    store.put(day)
    logger.info("attached %d photo(s) to %s", len(added), day_date)
    return added


def detach(store, day_date, photo_id):
    """Remove a photo by id. Missing day or photo is a no-op returning False."""
    day = store.get(day_date)
    if day is None:
        return False

    before = len(day.photos)
    day.photos = [p for p in day.photos if p.id != photo_id]
    removed = len(day.photos) != before

    day.touch()
    store.put(day)
    if removed:
        logger.info("removed photo %s from %s", photo_id, day_date)
    return removed


def get_photo(store, day_date, photo_id):
    day = store.get(day_date)
    if day is None:
        return None
    return day.find_photo(photo_id)
