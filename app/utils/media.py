import logging
import os

from moviepy import AudioFileClip

logger = logging.getLogger(__name__)


def get_audio_metadata(audio_path):
    """Return (duration in seconds, size in bytes) for an uploaded mp3."""
    size = os.path.getsize(audio_path) if os.path.exists(audio_path) else None
    clip = None
    try:
        clip = AudioFileClip(audio_path)
        duration = round(clip.duration, 2) if clip.duration else None
        return duration, size
    except Exception as e:
        # unreadable audio still gets stored, only without a duration
        logger.warning("Error analyzing audio %s: %s", audio_path, e)
        return None, size
    finally:
        if clip is not None:
            clip.close()


def format_duration(seconds):
    """Convert float seconds to HH:MM:SS string."""
    if not seconds:
        return "00:00:00"
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, secs = divmod(remainder, 60)
    return f"{hours:02}:{minutes:02}:{secs:02}"


def format_size(bytes_size):
    """Convert bytes to human-readable GB/MB/KB."""
    if not bytes_size:
        return "0 KB"
    for unit in ["B", "KB", "MB", "GB"]:
        if bytes_size < 1024.0:
            return f"{bytes_size:.2f} {unit}"
        bytes_size /= 1024.0
    return f"{bytes_size:.2f} TB"
