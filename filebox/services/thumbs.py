import logging
import os
import subprocess

from PIL import Image, ImageOps, UnidentifiedImageError

logger = logging.getLogger(__name__)

THUMB_WIDTH = 350
PREVIEW_SECONDS = 3
# Upper bound for a single ffmpeg run
FFMPEG_TIMEOUT_SECONDS = 60


def thumb_path(thumbs_dir: str, stem: str) -> str:
    return os.path.join(thumbs_dir, f"{stem}.webp")


def preview_path(thumbs_dir: str, stem: str) -> str:
    return os.path.join(thumbs_dir, "preview", f"{stem}.webm")


def ensure_image_thumbnail(orig_path: str, out_path: str, width: int = THUMB_WIDTH) -> bool:
    try:
        os.makedirs(os.path.dirname(out_path), exist_ok=True)
        with Image.open(orig_path) as im:
            im = ImageOps.exif_transpose(im)
            # Avoid upscaling
            w = min(int(width), int(im.width)) if im.width else int(width)
            if w <= 0:
                w = int(width)
            ratio = w / float(max(1, im.width))
            new_size = (w, max(1, int(im.height * ratio)))
            im = im.convert("RGB").resize(new_size, Image.Resampling.LANCZOS)
            tmp = out_path + ".tmp"
            im.save(tmp, format="WEBP", quality=80)
            os.replace(tmp, out_path)
        return True
    except (OSError, UnidentifiedImageError, ValueError) as e:
        logger.warning(f"Thumbnail generation failed for {orig_path}: {e}")
        return False


def _ffmpeg(args: list[str]) -> bool:
    try:
        subprocess.run(
            ["ffmpeg", "-y", *args],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            check=True,
            timeout=FFMPEG_TIMEOUT_SECONDS,
        )
        return True
    except subprocess.TimeoutExpired:
        logger.warning(f"ffmpeg timed out after {FFMPEG_TIMEOUT_SECONDS}s: {args}")
        return False
    except (OSError, subprocess.CalledProcessError) as e:
        logger.warning(f"ffmpeg failed: {e}")
        return False


def ensure_video_thumbnail(orig_path: str, out_path: str, width: int = THUMB_WIDTH) -> bool:
    """Grab a frame at 1s as a WebP still. Requires ffmpeg on PATH."""
    os.makedirs(os.path.dirname(out_path), exist_ok=True)
    ok = _ffmpeg(
        ["-ss", "1", "-i", orig_path, "-vframes", "1", "-vf", f"scale={int(width)}:-2", out_path]
    )
    return ok and os.path.exists(out_path)


def ensure_video_preview(orig_path: str, out_path: str, width: int = THUMB_WIDTH) -> bool:
    """Cut a short muted WebM loop for hover previews. Requires ffmpeg on PATH."""
    os.makedirs(os.path.dirname(out_path), exist_ok=True)
    ok = _ffmpeg(
        [
            "-ss",
            "1",
            "-t",
            str(PREVIEW_SECONDS),
            "-i",
            orig_path,
            "-an",
            "-vf",
            f"scale={int(width)}:-2",
            "-c:v",
            "libvpx",
            out_path,
        ]
    )
    return ok and os.path.exists(out_path)


def remove_thumbnails(thumbs_dir: str, stem: str) -> None:
    for p in (thumb_path(thumbs_dir, stem), preview_path(thumbs_dir, stem)):
        try:
            os.remove(p)
        except FileNotFoundError:
            continue
