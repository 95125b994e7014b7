# albumseq: Sequence tracklists onto vinyl, cassette and CD sides
# Package: src.albumseq

__version__ = "0.1.0"
__author__ = "albumseq Contributors"
__description__ = "Constraint-driven track sequencing for multi-sided physical media"

# Module structure:
#   - albumseq.models    : Duration, Track, Tracklist, Medium
#   - albumseq.sequence  : Constraints, side assignment, scoring & search
#   - albumseq.db        : SQLite context store
#   - albumseq.library   : Tracklists from audio files
#   - albumseq.report    : Text rendering of proposals
#   - albumseq.config    : Configuration management
#   - albumseq.cli       : Command-line interface
