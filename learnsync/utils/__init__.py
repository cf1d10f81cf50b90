"""Utility modules."""
from learnsync.utils.http_errors import api_error
from learnsync.utils.json_utils import compact_json_dump, json_dump, json_load
from learnsync.utils.numbers import percent, round_half_up
from learnsync.utils.time_utils import epoch_millis, parse_iso_timestamp, to_iso, utc_now
from learnsync.utils.validation import validate_id

__all__ = [
    "api_error",
    "compact_json_dump",
    "json_dump",
    "json_load",
    "epoch_millis",
    "percent",
    "round_half_up",
    "parse_iso_timestamp",
    "to_iso",
    "utc_now",
    "validate_id",
]
