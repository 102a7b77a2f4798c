"""
圖片編解碼工具
壓縮縮圖、MIME 推斷與 data URI 轉換
"""

import base64
import binascii
import logging
import os
from io import BytesIO
from typing import Optional, Tuple

from PIL import Image, ImageOps

from config import JPEG_QUALITY, MAX_IMAGE_EDGE

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/jpeg"

# 副檔名對應，未知的一律視為 JPEG，上游會拒絕非圖片的 MIME
EXTENSION_MIME_TYPES = {
    "png": "image/png",
    "gif": "image/gif",
    "webp": "image/webp",
    "bmp": "image/bmp",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "jfif": "image/jpeg",
    "heic": "image/heic",
    "heif": "image/heif",
}


def guess_image_mime(filename: Optional[str], content_type: Optional[str] = None) -> str:
    """依宣告的 content type 或副檔名推斷圖片 MIME"""
    if content_type:
        declared = content_type.split(";")[0].strip().lower()
        if declared.startswith("image/") and declared != "image/*":
            return declared

    ext = os.path.splitext(filename or "")[1].lstrip(".").lower()
    return EXTENSION_MIME_TYPES.get(ext, DEFAULT_IMAGE_MIME)


def to_data_uri(data: bytes, mime_type: str) -> str:
    """將二進位內容編碼為 data URI"""
    encoded = base64.b64encode(data).decode("utf-8")
    return f"data:{mime_type};base64,{encoded}"


def from_data_uri(uri: str) -> Tuple[str, bytes]:
    """解析 data URI，回傳 (mime_type, bytes)"""
    if not uri.startswith("data:") or ";base64," not in uri:
        raise ValueError("不是 base64 data URI")

    header, payload = uri[len("data:") :].split(";base64,", 1)
    try:
        return header, base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise ValueError(f"base64 解碼失敗: {e}") from e


def fit_within(width: int, height: int, max_edge: int) -> Tuple[int, int]:
    """等比縮放使長邊不超過 max_edge，不放大"""
    longest = max(width, height)
    if longest <= max_edge:
        return width, height

    ratio = max_edge / longest
    return max(1, round(width * ratio)), max(1, round(height * ratio))


def compress_image(
    image_data: bytes, max_edge: int = MAX_IMAGE_EDGE, quality: int = JPEG_QUALITY
) -> bytes:
    """
    壓縮圖片以降低上傳大小

    長邊縮到 max_edge 以內並重新編碼為 JPEG，保留截圖文字的可讀性
    無法解碼的內容會拋出 ValueError
    """
    try:
        img = Image.open(BytesIO(image_data))
        img.load()
        img = ImageOps.exif_transpose(img)
    except Exception as e:
        raise ValueError(f"無法解碼圖片: {e}") from e

    # JPEG 不支援透明通道
    if img.mode != "RGB":
        img = img.convert("RGB")

    new_size = fit_within(img.width, img.height, max_edge)
    if new_size != img.size:
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    buffer = BytesIO()
    img.save(buffer, format="JPEG", quality=quality, optimize=True)
    logger.debug(f"圖片壓縮完成: {len(image_data)} -> {buffer.tell()} bytes, {new_size}")
    return buffer.getvalue()


def jpeg_filename(filename: Optional[str]) -> str:
    """把檔名的副檔名換成 .jpg"""
    stem = os.path.splitext(os.path.basename(filename or ""))[0] or "image"
    return f"{stem}.jpg"
