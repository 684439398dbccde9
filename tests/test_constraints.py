import pytest
from pydantic import ValidationError

from models import Stage, StageKind
from pipeline import source


class TestConstraints:
    """Test stage arguments and edge cases"""

    def test_negative_skip_rejected(self):
        with pytest.raises(ValueError):
            source(range(5)).skip(-1)

    def test_negative_limit_rejected(self):
        with pytest.raises(ValidationError):
            source(range(5)).limit(-1)

    def test_zero_limit(self):
        result = source(range(5)).limit(0).to_list()
        assert result == [], f"Zero limit should return empty list, got {result}"

    def test_large_skip(self):
        """Skip larger than the source yields nothing"""
        assert source(range(5)).skip(10).to_list() == []
        assert source(range(5)).skip(100).limit(3).to_list() == []

    def test_large_limit(self):
        """Limit larger than the source yields everything"""
        assert source(range(5)).limit(10).to_list() == [0, 1, 2, 3, 4]
        assert source(range(5)).skip(2).limit(10).to_list() == [2, 3, 4]

    def test_skip_applies_to_traversal_order(self):
        """Skip after sorted drops the smallest elements"""
        result = source([5, 1, 4, 2, 3]).sorted().skip(2).to_list()
        assert result == [3, 4, 5]

    def test_empty_source(self):
        assert source([]).map(lambda x: x * 2).to_list() == []
        assert source([]).filter(lambda x: True).to_list() == []
        assert source([]).sorted().to_list() == []
        assert source([]).flat_map(lambda x: [x]).to_list() == []

    def test_flat_map_accepts_iterables(self):
        result = source([1, 2]).flat_map(lambda x: range(x)).to_list()
        assert result == [0, 0, 1]

    def test_distinct(self):
        result = source([3, 1, 3, 2, 1]).distinct().to_list()
        assert result == [3, 1, 2]

    def test_batch(self):
        result = source(range(1, 8)).batch(3).to_list()
        assert result == [(1, 2, 3), (4, 5, 6), (7,)]
        assert source(range(4)).chunk(2).count() == 2

    def test_batch_size_must_be_positive(self):
        with pytest.raises(ValueError):
            source(range(5)).batch(0)

    def test_missing_function_rejected(self):
        with pytest.raises(ValidationError):
            source([1]).map(None)

    def test_non_callable_rejected(self):
        with pytest.raises(ValidationError):
            source([1]).filter("not callable")

    def test_key_and_comparator_are_exclusive(self):
        with pytest.raises(ValueError):
            source([1, 2]).sorted(key=abs, comparator=lambda a, b: a - b)

    def test_rejected_stage_leaves_pipeline_usable(self):
        """A stage that fails validation does not link the receiver"""
        lazy_pipe = source([1, 2, 3])
        with pytest.raises(ValueError):
            lazy_pipe.limit(-1)
        assert lazy_pipe.limit(2).to_list() == [1, 2]

    def test_stage_is_immutable(self):
        stage = Stage(kind=StageKind.LIMIT, count=3)
        with pytest.raises(ValidationError):
            stage.count = 5
        assert stage.describe() == "limit(3)"

    def test_sorted_with_comparator(self):
        by_length = lambda a, b: len(a) - len(b)
        result = source(["ccc", "a", "bb"]).sorted(comparator=by_length).to_list()
        assert result == ["a", "bb", "ccc"]

    def test_truncating_parity_on_negative_numbers(self):
        from utils import is_even, is_odd

        result = source([-3, -2, -1, 0, 1, 2]).filter(is_even).to_list()
        assert result == [-2, 0, 2]
        assert source([-3, -2, -1]).filter(is_odd).to_list() == [-3, -1]
