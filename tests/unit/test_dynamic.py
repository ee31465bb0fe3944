import re
import time
import uuid

import pytest

from pmscript.dynamic import is_dynamic, resolve_dynamic


def test_timestamp_is_epoch_milliseconds():
    value = resolve_dynamic("timestamp")
    assert value.isdigit()
    assert abs(int(value) - time.time() * 1000) < 60_000


def test_timestamp_is_non_decreasing():
    first = int(resolve_dynamic("timestamp"))
    second = int(resolve_dynamic("timestamp"))
    assert second >= first


def test_names_are_case_insensitive():
    assert resolve_dynamic("TimeStamp").isdigit()
    assert resolve_dynamic("UUID") is not None


def test_datetime():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", resolve_dynamic("datetime"))


def test_date_and_time():
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", resolve_dynamic("date"))
    assert re.fullmatch(r"\d{2}:\d{2}:\d{2}", resolve_dynamic("time"))


def test_uuid_is_v4():
    assert uuid.UUID(resolve_dynamic("uuid")).version == 4


def test_uuid_changes_on_every_read():
    assert resolve_dynamic("uuid") != resolve_dynamic("uuid")


def test_random():
    assert 0 <= float(resolve_dynamic("random")) < 1


def test_randomint():
    assert 0 <= int(resolve_dynamic("randomint")) < 1000


@pytest.mark.parametrize(
    "name,low,high",
    [
        ("random(1,3)", 1, 3),
        ("random( 5 , 5 )", 5, 5),
        ("random(-2,2)", -2, 2),
        ("random(10,1)", 1, 10),
    ],
)
def test_random_range_is_inclusive(name, low, high):
    for _ in range(20):
        assert low <= int(resolve_dynamic(name)) <= high


@pytest.mark.parametrize("name", ["unknown", "random(a,b)", "random(1)", ""])
def test_unknown_names(name):
    assert resolve_dynamic(name) is None


def test_is_dynamic():
    assert is_dynamic("timestamp")
    assert is_dynamic("random(1, 2)")
    assert not is_dynamic("baseUrl")
