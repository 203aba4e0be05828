import asyncio
import os
import re
import unicodedata
from typing import Optional

from ..exceptions import AudioExtractionError
from ..utils.logger import get_logger

logger = get_logger(__name__)

def clean_filename(s: str) -> str:
    """Normalizes Unicode (full-width to half-width) and drops spaces before punctuation"""
    s = unicodedata.normalize('NFKC', s)
    return re.sub(r'\s+([?.!,)])', r'\1', s)

class FFmpegAudioExtractor:
    """Extracts the audio track of a video into a 20k mp3 with a local ffmpeg"""

    def __init__(self, output_dir: Optional[str] = None, bitrate: str = "20k", ffmpeg_bin: str = "ffmpeg"):
        self.output_dir = output_dir
        self.bitrate = bitrate
        self.ffmpeg_bin = ffmpeg_bin

    def build_command(self, video_path: str, audio_path: str):
        return [
            self.ffmpeg_bin,
            "-y",
            "-i", video_path,
            "-map", "0:a",
            "-b:a", self.bitrate,
            "-acodec", "libmp3lame",
            audio_path,
        ]

    def output_path(self, video_path: str) -> str:
        output_dir = self.output_dir or os.path.dirname(os.path.abspath(video_path))
        base, _ = os.path.splitext(os.path.basename(video_path))
        return os.path.join(output_dir, f"{clean_filename(base)}.mp3")

    async def extract(self, video_path: str) -> str:
        """Converts ``video_path`` and returns the path of the mp3 file"""
        if not os.path.isfile(video_path):
            raise AudioExtractionError("Video file not found", {"path": video_path})

        audio_path = self.output_path(video_path)
        os.makedirs(os.path.dirname(audio_path), exist_ok=True)
        cmd = self.build_command(video_path, audio_path)

        logger.info(f"Converting {video_path} to {audio_path}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise AudioExtractionError(f"{self.ffmpeg_bin} is not installed") from e

        try:
            _, stderr = await proc.communicate()
        except asyncio.CancelledError:
            proc.kill()
            raise

        if proc.returncode != 0:
            output = stderr.decode('utf-8', errors='replace').strip().splitlines()
            raise AudioExtractionError(
                f"ffmpeg command failed: {' '.join(cmd)}",
                {"returncode": proc.returncode, "stderr": output[-1] if output else ""},
            )

        logger.info(f"Convert finished: {audio_path}")
        return audio_path
