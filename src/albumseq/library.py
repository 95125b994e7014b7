"""
Audio Library Import: Build tracklists from audio files.

Reads each file's playing time and title tag with mutagen, one file at a
time. Files mutagen cannot read are skipped with a warning.
"""

import logging
from pathlib import Path
from typing import Iterable, List, Optional

import mutagen

from .models import Duration, Track, Tracklist

logger = logging.getLogger(__name__)

# Supported audio formats
AUDIO_FORMATS = {".mp3", ".m4a", ".flac", ".wav", ".aif", ".aiff", ".ogg", ".opus"}


def discover_audio_files(library_path: str) -> List[Path]:
    """
    Discover audio files below a directory.

    Args:
        library_path: Directory to scan recursively.

    Returns:
        Sorted list of audio file paths (sorted order is the tracklist order).
    """
    lib_path = Path(library_path)

    if not lib_path.is_dir():
        logger.warning(f"Library path not found: {library_path}")
        return []

    audio_files = [
        p for p in lib_path.rglob("*")
        if p.is_file() and p.suffix.lower() in AUDIO_FORMATS
    ]

    logger.info(f"Found {len(audio_files)} audio files in {library_path}")
    return sorted(audio_files)


def _title_from_tags(audio) -> Optional[str]:
    tags = getattr(audio, "tags", None)
    if not tags:
        return None
    try:
        values = tags.get("title")
    except (KeyError, ValueError):
        return None
    if not values:
        return None
    title = values[0] if isinstance(values, list) else values
    title = str(title).strip()
    return title or None


def read_track(file_path: str) -> Optional[Track]:
    """
    Read one audio file into a Track.

    Args:
        file_path: Path to audio file.

    Returns:
        Track named after its title tag (file stem if untagged), or None if
        the file cannot be read.
    """
    try:
        audio = mutagen.File(str(file_path), easy=True)
    except (mutagen.MutagenError, OSError) as e:
        logger.warning(f"Could not read {file_path}: {e}")
        return None

    if audio is None or getattr(audio, "info", None) is None:
        logger.warning(f"Unsupported audio file: {file_path}")
        return None

    length = getattr(audio.info, "length", None)
    if not length or length <= 0:
        logger.warning(f"Could not get duration for {file_path}")
        return None

    title = _title_from_tags(audio) or Path(file_path).stem
    track = Track(title, Duration.from_seconds(length))
    logger.debug(f"Read {Path(file_path).name}: '{track.name}' ({track.duration})")
    return track


def tracks_from_files(file_paths: Iterable[str]) -> List[Track]:
    """
    Read tracks from audio files, keeping the given order.

    Unreadable files are skipped; a repeated title gets a " (2)", " (3)" ...
    suffix so names stay unique within the tracklist.
    """
    tracks = []
    seen = {}

    for file_path in file_paths:
        track = read_track(file_path)
        if track is None:
            continue

        count = seen.get(track.name, 0) + 1
        seen[track.name] = count
        if count > 1:
            renamed = f"{track.name} ({count})"
            logger.warning(f"Duplicate title '{track.name}' in {file_path}; using '{renamed}'")
            track = Track(renamed, track.duration)

        tracks.append(track)

    return tracks


def tracklist_from_directory(name: str, library_path: str) -> Tracklist:
    """Build a named tracklist from every audio file below a directory."""
    tracks = tracks_from_files(discover_audio_files(library_path))
    logger.info(f"✅ Read {len(tracks)} tracks for tracklist '{name}'")
    return Tracklist(name, tracks)
