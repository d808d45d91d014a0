"""
Settings of a generation run, read from the environment (and a .env file).
"""
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from entsql.context.mapping import GenerationType

TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in TRUE_VALUES


class GenerationSettings(BaseModel):
    dialect: str = Field(default="generic", description="Name of the target database dialect")
    write_relative_ids: bool = Field(
        default=False,
        description="Write ids relative to the counters found when the script runs"
    )
    default_generator_strategy: GenerationType = Field(
        default=GenerationType.SEQUENCE,
        description="Strategy used for ids with GenerationType.AUTO"
    )
    generator_table: str = Field(default="hibernate_sequences", description="Table of counter rows")
    strict_generator_synchronization: bool = Field(
        default=False,
        description="Fail if the current value of a generator can't be read from the database"
    )

    @classmethod
    def from_env(cls, dotenv_path: Optional[str] = None) -> "GenerationSettings":
        load_dotenv(dotenv_path)
        return cls(
            dialect=os.getenv("ENTSQL_DIALECT", "generic"),
            write_relative_ids=_env_flag("ENTSQL_RELATIVE_IDS", False),
            default_generator_strategy=GenerationType(os.getenv("ENTSQL_GENERATOR_STRATEGY", "sequence").lower()),
            generator_table=os.getenv("ENTSQL_GENERATOR_TABLE", "hibernate_sequences"),
            strict_generator_synchronization=_env_flag("ENTSQL_STRICT_SYNC", False),
        )
