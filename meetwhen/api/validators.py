"""Pydantic field types shared by the routers.

Anything failing here is rejected with 422 before the engine runs.
"""

from typing import Annotated

from pydantic import AfterValidator

from meetwhen.scheduling.clock import get_zone, parse_clock


def _check_timezone(value: str) -> str:
    get_zone(value)
    return value


def _check_clock(value: str) -> str:
    parse_clock(value)
    return value


TimezoneName = Annotated[str, AfterValidator(_check_timezone)]
ClockTime = Annotated[str, AfterValidator(_check_clock)]
