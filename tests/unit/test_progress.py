"""
Unit Tests - Progress Payloads
"""
import pytest

from mediatrack.database.models import MetadataLot
from mediatrack.database.progress import (
    PodcastExtraInformation,
    ShowExtraInformation,
    load_extra_information,
    parse_extra_information,
    validate_for_lot,
)
from mediatrack.errors import ValidationFailed


class TestExtraInformation:
    """Tests for the show/podcast payload union"""

    def test_show_payload(self):
        parsed = parse_extra_information({"kind": "show", "season": 2, "episode": 5})

        assert parsed == ShowExtraInformation(season=2, episode=5)

    def test_podcast_payload(self):
        parsed = parse_extra_information({"kind": "podcast", "episode": 12})

        assert isinstance(parsed, PodcastExtraInformation)

    def test_none_passes_through(self):
        assert parse_extra_information(None) is None
        assert validate_for_lot(None, MetadataLot.BOOK) is None

    @pytest.mark.parametrize("payload", [
        {"kind": "show", "season": 1},
        {"kind": "show", "season": -1, "episode": 1},
        {"kind": "podcast", "episode": 1, "season": 1},
        {"kind": "anime", "episode": 1},
        {"episode": 1},
    ])
    def test_malformed(self, payload):
        with pytest.raises(ValidationFailed):
            parse_extra_information(payload)

    def test_kind_must_match_lot(self):
        """Test a show payload cannot describe a podcast"""
        with pytest.raises(ValidationFailed):
            validate_for_lot({"kind": "show", "season": 1, "episode": 1}, MetadataLot.PODCAST)

    def test_normalised_form(self):
        stored = validate_for_lot({"kind": "podcast", "episode": 3}, MetadataLot.PODCAST)

        assert stored == {"kind": "podcast", "episode": 3}

    def test_load_tolerates_bad_rows(self):
        assert load_extra_information({"kind": "show"}) is None
        assert load_extra_information({}) is None
        assert load_extra_information({"kind": "podcast", "episode": 1}).episode == 1
