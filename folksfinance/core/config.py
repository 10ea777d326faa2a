"""
TOML configuration

.. code-block:: toml

    [logging]
    level = "INFO"

    [allocation]
    max_appl_calls = 8
    capacity_buffer = 10_000_000  # microalgos

    [risk]
    formula_version = "lend-v2"

Every section and key is optional.
"""

import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from folksfinance.core.logging import configure_logging, parse_log_level
from folksfinance.errors import InvalidInput
from folksfinance.lend.loan import LEND_V2, RISK_FORMULA_VERSIONS, LoanRiskEngine
from folksfinance.xalgo.allocation import (
    FIXED_CAPACITY_BUFFER,
    MAX_APPL_CALLS,
    GreedyStakeAllocationStrategy,
    GreedyUnstakeAllocationStrategy,
)


@dataclass(slots=True, frozen=True)
class Config:
    log_level: int | str = "WARNING"
    max_appl_calls: int = MAX_APPL_CALLS
    capacity_buffer: int = FIXED_CAPACITY_BUFFER
    formula_version: str = LEND_V2.name

    @classmethod
    def from_dict(cls, config: dict[str, Any]) -> "Config":
        """
        :exception InvalidInput: if a value has the wrong type or the formula version is unknown
        """
        logging_config = config.get("logging", {})
        allocation = config.get("allocation", {})
        risk = config.get("risk", {})

        def require_int(section: dict[str, Any], key: str, default: int) -> int:
            value = section.get(key, default)
            if not isinstance(value, int) or isinstance(value, bool):
                raise InvalidInput(f"expected integer config value: {key}={value!r}")
            return value

        try:
            log_level = parse_log_level(logging_config.get("level", "WARNING"))
        except (ValueError, AttributeError) as err:
            raise InvalidInput(f"invalid log level: {logging_config.get('level')!r}") from err

        formula_version = risk.get("formula_version", LEND_V2.name)
        if formula_version not in RISK_FORMULA_VERSIONS:
            raise InvalidInput(
                f"unknown risk formula version: {formula_version!r} - expected one of {sorted(RISK_FORMULA_VERSIONS)}"
            )

        return cls(
            log_level=log_level,
            max_appl_calls=require_int(allocation, "max_appl_calls", MAX_APPL_CALLS),
            capacity_buffer=require_int(allocation, "capacity_buffer", FIXED_CAPACITY_BUFFER),
            formula_version=formula_version,
        )

    @classmethod
    def from_config_file(cls, file: Path) -> "Config":
        """
        Loads the config from the specified TOML config file
        """
        with open(file, "rb") as config_file:
            config = tomllib.load(config_file)
        return cls.from_dict(config)

    def stake_allocation_strategy(self) -> GreedyStakeAllocationStrategy:
        return GreedyStakeAllocationStrategy(
            max_appl_calls=self.max_appl_calls,
            capacity_buffer=self.capacity_buffer,
        )

    def unstake_allocation_strategy(self) -> GreedyUnstakeAllocationStrategy:
        return GreedyUnstakeAllocationStrategy(
            max_appl_calls=self.max_appl_calls,
            capacity_buffer=self.capacity_buffer,
        )

    def risk_engine(self) -> LoanRiskEngine:
        return LoanRiskEngine(RISK_FORMULA_VERSIONS[self.formula_version])

    def configure_logging(self):
        configure_logging(level=self.log_level)
