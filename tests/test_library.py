"""
Unit tests for building tracklists from audio files.

mutagen is mocked; no real audio is decoded.
"""

from unittest.mock import MagicMock, patch

import mutagen
import pytest
from albumseq.library import (
    discover_audio_files,
    read_track,
    tracklist_from_directory,
    tracks_from_files,
)
from albumseq.models import Duration


def fake_audio(length, title=None):
    audio = MagicMock()
    audio.info.length = length
    audio.tags = {"title": [title]} if title else None
    return audio


@pytest.fixture
def library(tmp_path):
    """Directory with two audio files, one nested, and a cover image."""
    (tmp_path / "disc1").mkdir()
    (tmp_path / "01 Intro.mp3").write_bytes(b"")
    (tmp_path / "disc1" / "02 Outro.FLAC").write_bytes(b"")
    (tmp_path / "cover.jpg").write_bytes(b"")
    return tmp_path


class TestDiscovery:
    def test_finds_audio_only(self, library):
        files = discover_audio_files(str(library))
        assert [f.name for f in files] == ["01 Intro.mp3", "02 Outro.FLAC"]

    def test_missing_directory(self, tmp_path):
        assert discover_audio_files(str(tmp_path / "absent")) == []


class TestReadTrack:
    def test_title_tag(self):
        with patch("albumseq.library.mutagen.File", return_value=fake_audio(225.0, "Song1")):
            track = read_track("/music/a.mp3")
        assert track.name == "Song1"
        assert track.duration == Duration(225_000)

    def test_falls_back_to_stem(self):
        with patch("albumseq.library.mutagen.File", return_value=fake_audio(61.4)):
            track = read_track("/music/Untitled Jam.flac")
        assert track.name == "Untitled Jam"
        assert str(track.duration) == "01:01"

    def test_unsupported(self):
        with patch("albumseq.library.mutagen.File", return_value=None):
            assert read_track("/music/a.xyz") is None

    def test_unreadable(self, caplog):
        with patch(
            "albumseq.library.mutagen.File",
            side_effect=mutagen.MutagenError("bad header"),
        ):
            assert read_track("/music/a.mp3") is None
        assert "Could not read" in caplog.text

    def test_zero_length(self):
        with patch("albumseq.library.mutagen.File", return_value=fake_audio(0)):
            assert read_track("/music/a.mp3") is None


class TestTracksFromFiles:
    def test_duplicate_titles_renamed(self):
        audios = [fake_audio(100, "Take"), None, fake_audio(120, "Take"), fake_audio(90, "Take")]
        with patch("albumseq.library.mutagen.File", side_effect=audios):
            tracks = tracks_from_files(["a.mp3", "b.mp3", "c.mp3", "d.mp3"])
        assert [t.name for t in tracks] == ["Take", "Take (2)", "Take (3)"]

    def test_tracklist_from_directory(self, library):
        audios = [fake_audio(60, "Intro"), fake_audio(180, "Outro")]
        with patch("albumseq.library.mutagen.File", side_effect=audios) as mock_file:
            tracklist = tracklist_from_directory("Live", str(library))
        assert tracklist.name == "Live"
        assert tracklist.names() == ["Intro", "Outro"]
        assert tracklist.total_duration == Duration(240_000)
        assert mock_file.call_count == 2
