"""Tests for inbound packet classification."""

from __future__ import annotations

import pytest

from barista_client.classify import applies_to, classify_query, classify_relay


class TestAppliesTo:
    """Tests for the model identity check."""

    def test_matching_model(self):
        assert applies_to({"model_id": "room1"}, "room1")

    def test_other_model(self):
        assert not applies_to({"model_id": "room2"}, "room1")

    @pytest.mark.parametrize("mid", [None, "", 0])
    def test_missing_model(self, mid):
        """Test falsy model ids never match, even an unbound manager."""
        assert not applies_to({"model_id": mid}, "room1")
        assert not applies_to({"model_id": mid}, None)


class TestClassifyRelay:
    """Tests for classify_relay()."""

    @pytest.mark.parametrize(
        "packet_class",
        ["relay", "message", "merge", "rebuild", "clairvoyance", "telekinesis"],
    )
    def test_known_classes_for_us(self, packet_class):
        """Test every known class is accepted for our model."""
        packet = {"class": packet_class, "model_id": "room1"}
        assert classify_relay(packet, "room1") == packet_class

    @pytest.mark.parametrize(
        "packet_class",
        ["relay", "message", "merge", "rebuild", "clairvoyance", "telekinesis"],
    )
    def test_known_classes_for_others(self, packet_class):
        """Test every non-broadcast class is dropped for another model."""
        packet = {"class": packet_class, "model_id": "room2"}
        assert classify_relay(packet, "room1") is None

    @pytest.mark.parametrize("mid", ["room1", "room2", None])
    def test_broadcast_any_model(self, mid):
        """Test broadcasts are accepted regardless of model id."""
        assert classify_relay({"class": "broadcast", "model_id": mid}, "room1") == (
            "broadcast"
        )

    def test_unknown_class(self):
        assert classify_relay({"class": "query", "model_id": "room1"}, "room1") is None

    def test_missing_class(self):
        assert classify_relay({"model_id": "room1"}, "room1") is None

    @pytest.mark.parametrize("packet_class", [["message"], {"a": 1}, 7, True])
    def test_non_string_class(self, packet_class, caplog):
        """Test a class that is not a string is logged as unknown and dropped."""
        with caplog.at_level("DEBUG", logger="barista_client"):
            packet = {"class": packet_class, "model_id": "room1"}
            assert classify_relay(packet, "room1") is None

        assert "unknown relay class" in caplog.text


class TestClassifyQuery:
    """Tests for classify_query()."""

    def test_query_for_us(self):
        assert classify_query({"class": "query", "model_id": "room1"}, "room1") == (
            "query"
        )

    def test_query_for_others(self):
        assert classify_query({"class": "query", "model_id": "room2"}, "room1") is None

    def test_relay_class_is_not_a_query(self):
        packet = {"class": "message", "model_id": "room1"}
        assert classify_query(packet, "room1") is None

    def test_model_checked_before_class(self, caplog):
        """Test a foreign query is dropped before its class is looked at."""
        with caplog.at_level("DEBUG", logger="barista_client"):
            assert classify_query({"class": "mystery", "model_id": "x"}, "room1") is None

        assert "not for us" in caplog.text
        assert "unknown query class" not in caplog.text

    def test_missing_class_for_us(self, caplog):
        with caplog.at_level("DEBUG", logger="barista_client"):
            assert classify_query({"model_id": "room1"}, "room1") is None

        assert "no query class found" in caplog.text

    @pytest.mark.parametrize("packet_class", [["query"], {"a": 1}])
    def test_non_string_class(self, packet_class, caplog):
        """Test an unhashable query class is dropped, not raised."""
        with caplog.at_level("DEBUG", logger="barista_client"):
            packet = {"class": packet_class, "model_id": "room1"}
            assert classify_query(packet, "room1") is None

        assert "unknown query class" in caplog.text
