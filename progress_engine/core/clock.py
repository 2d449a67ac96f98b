from __future__ import annotations

import datetime


def epoch_seconds() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp())


def epoch_millis() -> int:
    return int(datetime.datetime.now(datetime.UTC).timestamp() * 1000)
