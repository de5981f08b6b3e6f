"""Runner configuration carried by watched branches.

A branch may contain a YAML file telling downstream automation how to train
and score a model from the branch contents. The file is validated here and
missing values are filled from the repository and branch names.
"""

from pathlib import Path
from typing import List, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from repowatcher.errors import RunnerConfigError


REGISTRY_TYPES = frozenset({"garvata", "huggingface"})
MODEL_TYPES = frozenset({"xgboost", "scikit-learn", "tensorflow", "pytorch", "llm", "custom"})


class _RunnerModel(BaseModel):
    # YAML happily produces ints for api keys and cpu counts
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")


class ModelRegistry(_RunnerModel):
    type: str = Field("", description="Registry type: garvata or huggingface")
    api_key: str = Field("", description="Registry API key")


class Model(_RunnerModel):
    type: str = Field("", description="Model framework")
    name: str = Field("", description="Model name (defaults to the repository name)")
    namespace: str = Field("", description="Model namespace (defaults to the branch name)")


class Database(_RunnerModel):
    type: str = Field("", description="Database type")
    connection_string: str = Field("", description="Database connection string")


class Specs(_RunnerModel):
    memory: str = Field("", description="Memory request")
    cpu: str = Field("", description="CPU request")
    gpu: str = Field("", description="GPU request")


class InputParam(_RunnerModel):
    name: str = Field(..., description="Parameter name")
    type: str = Field(..., description="Parameter type")


class ModelTrain(_RunnerModel):
    entrypoint: str = Field("", description="Training entrypoint")
    base_image: str = Field("", description="Container image used for training")
    requirements: List[str] = Field(default_factory=list, description="Extra packages")
    requirements_file: str = Field("", description="Requirements file inside the branch")
    specs: Specs = Field(default_factory=Specs)
    train_params: List[InputParam] = Field(default_factory=list)


class ModelScore(_RunnerModel):
    score_entry_point: str = Field("", description="Scoring entrypoint")
    base_image: str = Field("", description="Container image used for scoring")
    specs: Specs = Field(default_factory=Specs)
    score_params: List[InputParam] = Field(default_factory=list)


class RunnerConfig(_RunnerModel):
    """Resolved runner configuration for one branch."""

    enabled: bool = Field(False, description="Whether the runner is enabled")
    registry: ModelRegistry = Field(default_factory=ModelRegistry)
    model: Model = Field(default_factory=Model)
    database: Database = Field(default_factory=Database)
    train: ModelTrain = Field(default_factory=ModelTrain)
    score: ModelScore = Field(default_factory=ModelScore)


def parse_runner_config(
    data: Union[bytes, str], repo_name: str, branch_name: str
) -> RunnerConfig:
    """Parse and validate a runner configuration document.

    Args:
        data: YAML document
        repo_name: Default for ``model.name``
        branch_name: Default for ``model.namespace``

    Returns:
        RunnerConfig with defaults filled in

    Raises:
        RunnerConfigError: If the document is malformed or incomplete
    """
    try:
        raw = yaml.safe_load(data) or {}
    except yaml.YAMLError as e:
        raise RunnerConfigError(f"invalid YAML: {e}") from e

    if not isinstance(raw, dict):
        raise RunnerConfigError("runner config must be a mapping")

    try:
        config = RunnerConfig.model_validate(raw)
    except ValidationError as e:
        raise RunnerConfigError(str(e)) from e

    if config.registry.type not in REGISTRY_TYPES:
        raise RunnerConfigError(f"invalid registry type: {config.registry.type}")
    if not config.registry.api_key:
        raise RunnerConfigError(
            f"API key is not set for registry type: {config.registry.type}"
        )

    if config.model.type not in MODEL_TYPES:
        raise RunnerConfigError(f"invalid model type: {config.model.type}")

    if not config.train.entrypoint:
        raise RunnerConfigError("entrypoint is not set")
    if not config.train.base_image:
        raise RunnerConfigError("base image is not set")
    if not config.score.score_entry_point:
        raise RunnerConfigError("score entrypoint is not set")

    if not config.score.base_image:
        config.score.base_image = config.train.base_image
    if not config.model.name:
        config.model.name = repo_name
    if not config.model.namespace:
        config.model.namespace = branch_name

    return config


def parse_runner_config_file(
    path: Path, repo_name: str, branch_name: str
) -> RunnerConfig:
    """Read a runner configuration from disk and parse it."""
    return parse_runner_config(Path(path).read_bytes(), repo_name, branch_name)
