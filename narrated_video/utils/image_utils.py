"""Pillow helpers shared by the placeholder and thumbnail rasterizers."""

from pathlib import Path
from typing import Optional

from PIL import Image, ImageFont

SYSTEM_FONT_PATHS = [
    "/usr/share/fonts/truetype/dejavu/DejaVuSans-Bold.ttf",  # Linux
    "/usr/share/fonts/TTF/DejaVuSans-Bold.ttf",  # Arch
    "/System/Library/Fonts/Helvetica.ttc",  # macOS
    "C:/Windows/Fonts/arialbd.ttf",  # Windows
]


def load_font(size: int, font_path: Optional[str] = None) -> ImageFont.FreeTypeFont:
    """
    Load a TrueType font, trying the configured path before system fonts.

    Falls back to Pillow's bundled default font at the requested size.

    Args:
        size: Point size
        font_path: Optional configured font file

    Returns:
        A font usable with ImageDraw
    """
    candidates = [font_path] if font_path else []
    candidates.extend(SYSTEM_FONT_PATHS)
    for path in candidates:
        if path and Path(path).exists():
            return ImageFont.truetype(path, size)
    return ImageFont.load_default(size=size)


def resize_to_fill(img: Image.Image, target_size: tuple[int, int]) -> Image.Image:
    """
    Center-crop an image to the target aspect ratio and resize it.

    Args:
        img: Input image
        target_size: Target size (width, height)

    Returns:
        Resized/cropped image
    """
    target_width, target_height = target_size
    img_width, img_height = img.size

    target_aspect = target_width / target_height
    img_aspect = img_width / img_height

    if img_aspect > target_aspect:
        new_width = int(img_height * target_aspect)
        left = (img_width - new_width) // 2
        img = img.crop((left, 0, left + new_width, img_height))
    else:
        new_height = int(img_width / target_aspect)
        top = (img_height - new_height) // 2
        img = img.crop((0, top, img_width, top + new_height))

    return img.resize(target_size, Image.Resampling.LANCZOS)
