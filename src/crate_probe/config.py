from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class LoaderMethod(StrEnum):
    AUTO = "auto"
    METADATA = "metadata"
    SCAN = "scan"


class LoadCargoConfig(BaseModel):
    """Options for turning a Cargo workspace into a project database."""

    model_config = ConfigDict(frozen=True)

    method: LoaderMethod = LoaderMethod.AUTO
    include_build_output: bool = False
    include_macro_expansion: bool = False
    features: tuple[str, ...] = ()
    all_features: bool = False
    no_default_features: bool = False
    cargo: str = "cargo"
