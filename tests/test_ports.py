import pytest
from pydantic import ValidationError

from core.models import ScanTarget
from core.ports import COMMON_PORTS, parse_ports


def test_common_default():
    assert parse_ports("") == list(COMMON_PORTS)
    assert parse_ports("common") == list(COMMON_PORTS)
    assert len(COMMON_PORTS) == 26


def test_mixed_spec_is_ordered_and_deduplicated():
    assert parse_ports("443, 80,79-81,443") == [443, 80, 79, 81]


@pytest.mark.parametrize("spec", ["abc", "0", "65536", "90-80", "22,x"])
def test_bad_specs_raise(spec):
    with pytest.raises(ValueError):
        parse_ports(spec)


def test_scan_target_is_frozen_and_deduplicated():
    target = ScanTarget(host="example.com", ports=(80, 22, 80))
    assert target.ports == (80, 22)
    with pytest.raises(ValidationError):
        target.host = "other"


def test_scan_target_rejects_invalid_input():
    with pytest.raises(ValueError):
        ScanTarget(host="", ports=(80,))
    with pytest.raises(ValueError):
        ScanTarget(host="h", ports=())
    with pytest.raises(ValueError):
        ScanTarget(host="h", ports=(70000,))
