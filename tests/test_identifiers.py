"""Tests for identifier transformation."""

import pytest

from propwright.common.exceptions import ErrorKind, ScraperError
from propwright.common.identifiers import (
    IdentifierTransformer,
    compose,
    remove_separator,
    reorder_segments,
    strip_non_numeric,
)


@pytest.fixture
def transformer():
    return IdentifierTransformer()


class TestBundledPipelines:
    """Tests for the bundled county pipelines."""

    def test_duval(self, transformer):
        """Duval keys shall lose their dashes."""
        assert transformer.transform("duval", "035697-0000") == "0356970000"

    def test_pasco(self, transformer):
        """Pasco keys shall swap section and range and drop separators."""
        assert (
            transformer.transform("pasco", "22-26-21-0030-00000-0280")
            == "2126220030000000280"
        )

    def test_unknown_jurisdiction_is_identity(self, transformer):
        """Counties without a pipeline shall keep the (trimmed) key."""
        assert transformer.transform("clay", " 12-34 ") == "12-34"

    def test_malformed_pasco_key(self, transformer):
        """A Pasco key with too few segments shall fail validation."""
        with pytest.raises(ScraperError) as exc_info:
            transformer.transform("pasco", "22-26")

        error = exc_info.value
        assert error.kind is ErrorKind.VALIDATION_ERROR
        assert error.jurisdiction_id == "pasco"
        assert error.identifier_value == "22-26"
        assert error.detail["raw_identifier"] == "22-26"

    @pytest.mark.parametrize("raw", ["", "   "])
    def test_empty_identifier(self, transformer, raw):
        """A blank key shall fail validation."""
        with pytest.raises(ScraperError) as exc_info:
            transformer.transform("duval", raw)

        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR

    def test_empty_after_transform(self, transformer):
        """A key reduced to nothing shall fail validation."""
        with pytest.raises(ScraperError) as exc_info:
            transformer.transform("duval", "---")

        assert exc_info.value.kind is ErrorKind.VALIDATION_ERROR

    def test_register(self, transformer):
        """A registered pipeline shall be used for its county."""
        transformer.register("clay", strip_non_numeric())

        assert transformer.transform("clay", "12-34-A") == "1234"


class TestPrimitives:
    """Tests for the transform primitives."""

    def test_reorder_keeps_trailing_segments(self):
        """Segments after the reordered ones shall be appended unchanged."""
        reorder = reorder_segments("-", (2, 1, 0))

        assert reorder("A-B-C-D-E") == "C-B-A-D-E"

    def test_reorder_rejects_bad_order(self):
        """An order that is not a permutation shall be rejected."""
        with pytest.raises(ValueError):
            reorder_segments("-", (0, 0, 1))

    def test_remove_separator_requires_separator(self):
        """An empty separator shall be rejected."""
        with pytest.raises(ValueError):
            remove_separator("")

    def test_compose_left_to_right(self):
        """compose shall apply steps in order."""
        pipeline = compose(remove_separator("."), reorder_segments("-", (1, 0)))

        assert pipeline("1.2-3.4") == "34-12"
