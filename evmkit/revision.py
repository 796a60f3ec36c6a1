"""Ethereum protocol revisions, ordered from oldest to newest."""

from __future__ import annotations

import enum


class Revision(enum.IntEnum):
    """A hard-fork revision of the EVM rules.

    Members compare by age: an older revision is smaller than a newer one.
    """

    FRONTIER = 0
    HOMESTEAD = 1
    TANGERINE_WHISTLE = 2
    SPURIOUS_DRAGON = 3
    BYZANTIUM = 4
    CONSTANTINOPLE = 5
    PETERSBURG = 6
    ISTANBUL = 7
    BERLIN = 8
    LONDON = 9
    PARIS = 10
    SHANGHAI = 11
    CANCUN = 12
    PRAGUE = 13

    def __str__(self) -> str:
        return self.name.replace("_", " ").title()