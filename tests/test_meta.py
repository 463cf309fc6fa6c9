"""Tests for meta chains."""

import pytest

from layerstore import InvalidMetaChainError, constants
from layerstore.meta import add_meta, get_meta_data, has_meta, remove_all_meta, remove_meta


def _chain():
    action = {"type": "add", "payload": 1}
    return action, add_meta(add_meta(add_meta(action, "c"), "b", 2), "a", 1)


class TestAddMeta:
    def test_wraps_chain(self):
        action = {"type": "add"}
        wrapped = add_meta(action, constants.INHERIT, ["x"])
        assert wrapped == {"meta_type": constants.INHERIT, "meta_data": ["x"], "payload": action}
        assert wrapped["payload"] is action

    def test_falsy_meta_data_is_omitted(self):
        for falsy in (None, 0, "", [], {}):
            assert "meta_data" not in add_meta({"type": "a"}, "m", falsy)

    def test_does_not_mutate_input(self):
        action = {"type": "add"}
        add_meta(action, "m", 1)
        assert action == {"type": "add"}


class TestLookups:
    def test_get_meta_data_returns_first_match(self):
        _, chain = _chain()
        chain = add_meta(chain, "b", 99)
        assert get_meta_data(chain, "b") == 99

    def test_get_meta_data_missing(self):
        _, chain = _chain()
        assert get_meta_data(chain, "zzz") is None
        assert get_meta_data(chain, "c") is None  # present, but no data

    def test_has_meta(self):
        _, chain = _chain()
        assert has_meta(chain, "a")
        assert has_meta(chain, "c")
        assert not has_meta(chain, "zzz")

    def test_plain_action_has_no_meta(self):
        assert not has_meta({"type": "a"}, "a")
        assert get_meta_data({"type": "a"}, "a") is None

    def test_remove_all_meta(self):
        action, chain = _chain()
        assert remove_all_meta(chain) is action
        assert remove_all_meta(action) is action

    def test_effect_chains(self):
        effect = {"effect_type": constants.DISPATCH}
        chain = add_meta(effect, "m", "data")
        assert get_meta_data(chain, "m") == "data"
        assert remove_all_meta(chain) is effect


class TestRemoveMeta:
    def test_top_match_returns_next_layer(self):
        _, chain = _chain()
        assert remove_meta(chain, "a") is chain["payload"]

    def test_nested_match_copies_above_and_shares_below(self):
        _, chain = _chain()
        c_node = chain["payload"]["payload"]

        result = remove_meta(chain, "b")

        assert result is not chain
        assert result["meta_type"] == "a"
        assert result["payload"] is c_node
        # original untouched
        assert chain["payload"]["meta_type"] == "b"
        assert chain["payload"]["payload"] is c_node

    def test_deep_match_rebuilds_every_node_above(self):
        action, chain = _chain()
        result = remove_meta(chain, "c")
        assert result["meta_type"] == "a"
        assert result["payload"]["meta_type"] == "b"
        assert result["payload"] is not chain["payload"]
        assert result["payload"]["payload"] is action
        assert has_meta(chain, "c")

    def test_no_match_returns_original_object(self):
        _, chain = _chain()
        assert remove_meta(chain, "zzz") is chain

    def test_plain_action_returned_as_is(self):
        action = {"type": "a"}
        assert remove_meta(action, "a") is action

    def test_round_trip(self):
        _, chain = _chain()
        restored = remove_meta(add_meta(chain, "new", {"k": 1}), "new")
        for meta_type in ("a", "b", "c", "new"):
            assert has_meta(restored, meta_type) == has_meta(chain, meta_type)
            assert get_meta_data(restored, meta_type) == get_meta_data(chain, meta_type)


class TestInvalidChains:
    @pytest.mark.parametrize(
        "chain",
        [
            {"meta_type": "a"},
            {"meta_type": "a", "payload": None},
            {"meta_type": "a", "payload": {}},
            {"meta_type": "a", "payload": {"meta_type": "b", "payload": None}},
        ],
    )
    def test_walks_off_the_end(self, chain):
        with pytest.raises(InvalidMetaChainError, match="Invalid meta chain"):
            remove_all_meta(chain)
        with pytest.raises(InvalidMetaChainError):
            has_meta(chain, "zzz")
        with pytest.raises(InvalidMetaChainError):
            get_meta_data(chain, "zzz")
        with pytest.raises(InvalidMetaChainError):
            remove_meta(chain, "zzz")

    def test_is_a_value_error(self):
        with pytest.raises(ValueError):
            remove_all_meta({"meta_type": "a"})
