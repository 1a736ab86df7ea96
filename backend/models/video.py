from dataclasses import dataclass
from os import PathLike
from typing import BinaryIO, Union

# bytes, a filesystem path, an open binary stream, or a "data:" URI string
VideoSource = Union[bytes, str, PathLike, BinaryIO]


@dataclass(frozen=True)
class VideoFile:
    name: str                  # original filename, e.g. "interview.mp4"
    size: int                  # declared size in bytes
    mime_type: str             # declared MIME type, e.g. "video/mp4"
    source: VideoSource        # opaque handle the encoder reads from
