"""
多模态图片处理

- image_utils: 图片解码、缩放编码、临时文件和远程下载
"""

from .image_utils import (
    ImageDownloader,
    decode_image_payload,
    encode_caption_image,
    is_remote_ref,
    temporary_image_file,
    verify_image_bytes
)

__all__ = [
    "ImageDownloader",
    "decode_image_payload",
    "encode_caption_image",
    "is_remote_ref",
    "temporary_image_file",
    "verify_image_bytes"
]
