import pytest

from services.exceptions import InvalidReadOptionsError
from services.read_options import ReadMode, ReadOptions


@pytest.mark.unit
class TestReadOptions:

    def test_id_mode(self):
        """Test id mode."""
        options = ReadOptions.from_array({ReadOptions.SECTION: "post", ReadOptions.ID: "90000"})

        assert options.mode == ReadMode.ID
        assert options.id == 90000
        assert options.section == ["post"]
        assert options.section_handle == "post"

    def test_slug_mode(self):
        """Test slug mode."""
        options = ReadOptions.from_array({"section": "post", "slug": "first-post"})

        assert options.mode == ReadMode.SLUG
        assert options.slug == "first-post"

    def test_field_mode_with_list_value(self):
        """Test field mode with list value."""
        options = ReadOptions.from_array({"section": "post", "field": {"uuid": ["a", "b"]}})

        assert options.mode == ReadMode.FIELD
        assert options.field == {"uuid": ["a", "b"]}

    def test_listing_mode_when_no_selector(self):
        """Test listing mode when no selector."""
        options = ReadOptions.from_array({"section": "post", "offset": 5, "limit": 10})

        assert options.mode == ReadMode.LISTING
        assert options.offset == 5
        assert options.limit == 10

    def test_empty_field_filter_means_listing(self):
        """Test empty field filter means listing."""
        options = ReadOptions.from_array({"section": "post", "field": {}})

        assert options.field is None
        assert options.mode == ReadMode.LISTING

    def test_request_option_names_are_accepted(self):
        """Test request option names are accepted."""
        options = ReadOptions.from_array({
            "section": "post",
            "orderBy": {"created": "DESC"},
            "fetchFields": ["title"],
        })

        assert options.order_by == {"created": "desc"}
        assert options.fetch_fields == ["title"]

    def test_conflicting_selectors_are_rejected(self):
        """Test conflicting selectors are rejected."""
        with pytest.raises(InvalidReadOptionsError) as exc_info:
            ReadOptions.from_array({"section": "post", "id": 1, "slug": "first-post"})

        assert "conflicting selectors" in str(exc_info.value)

    def test_missing_section_is_rejected(self):
        """Test missing section is rejected."""
        with pytest.raises(InvalidReadOptionsError):
            ReadOptions.from_array({"id": 1})

    def test_blank_section_is_rejected(self):
        """Test blank section is rejected."""
        with pytest.raises(InvalidReadOptionsError):
            ReadOptions.from_array({"section": ""})

    def test_invalid_sort_direction_is_rejected(self):
        """Test invalid sort direction is rejected."""
        with pytest.raises(InvalidReadOptionsError):
            ReadOptions.from_array({"section": "post", "orderBy": {"created": "sideways"}})

    def test_unknown_option_is_rejected(self):
        """Test unknown option is rejected."""
        with pytest.raises(InvalidReadOptionsError):
            ReadOptions.from_array({"section": "post", "colour": "red"})

    def test_negative_offset_is_rejected(self):
        """Test negative offset is rejected."""
        with pytest.raises(InvalidReadOptionsError):
            ReadOptions.from_array({"section": "post", "offset": -1})

    def test_invalid_read_options_is_a_value_error(self):
        """Test invalid read options is a value error."""
        with pytest.raises(ValueError):
            ReadOptions.from_array({"section": "post", "id": "not-a-number"})
