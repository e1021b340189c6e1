"""Camera frame sources and photo upload."""

from .camera import FrameSource, SyntheticCamera
from .uploader import PhotoUploader, encode_frame, decode_photo

__all__ = [
    "FrameSource",
    "SyntheticCamera",
    "PhotoUploader",
    "encode_frame",
    "decode_photo",
]
