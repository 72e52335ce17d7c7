"""Loading and validation of the scoring rules document."""

import json
import re
from pathlib import Path
from typing import List, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from brandlens.core.exceptions import ConfigInvalidError
from brandlens.schemas.scoring import ScoringRulesConfig
from brandlens.services.scoring.defaults import default_scoring_rules
from brandlens.services.scoring.rules import RULE_DIMENSIONS, RULES
from brandlens.services.scoring.thresholds import check_threshold_table
from brandlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


def load_scoring_rules(path: Optional[str] = None) -> ScoringRulesConfig:
    """Load the scoring rules from a JSON or YAML file, or the built-in defaults.

    Raises:
        ConfigInvalidError: If the document cannot be read, parsed or validated
    """
    if not path:
        config = default_scoring_rules()
        validate_scoring_rules(config)
        return config

    file_path = Path(path)
    try:
        raw = file_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigInvalidError(f"Cannot read scoring rules {path}: {e}", original_error=e) from e

    try:
        if file_path.suffix.lower() in (".yaml", ".yml"):
            document = yaml.safe_load(raw)
        else:
            document = json.loads(raw)
        config = ScoringRulesConfig.model_validate(document)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise ConfigInvalidError(f"Cannot parse scoring rules {path}: {e}", original_error=e) from e
    except PydanticValidationError as e:
        raise ConfigInvalidError(f"Invalid scoring rules {path}: {e}", original_error=e) from e

    validate_scoring_rules(config)
    LOGGER.info(f"Loaded scoring rules version {config.version} from {path}")
    return config


def validate_scoring_rules(config: ScoringRulesConfig) -> None:
    """Check what the schema alone cannot: rule ids, tables and patterns.

    Raises:
        ConfigInvalidError: Listing every problem found
    """
    problems: List[str] = []

    for dimension, dimension_config in config.dimensions.items():
        for rule_id, rule in dimension_config.rules.items():
            if rule_id not in RULES:
                problems.append(f"{dimension.value}.{rule_id}: unknown rule")
                continue
            if RULE_DIMENSIONS[rule_id] != dimension:
                problems.append(
                    f"{dimension.value}.{rule_id}: rule belongs to {RULE_DIMENSIONS[rule_id].value}"
                )
            for problem in check_threshold_table(rule.thresholds):
                problems.append(f"{dimension.value}.{rule_id}: {problem}")

    for category in config.page_categories:
        for pattern in [*category.url_patterns, *category.title_patterns]:
            try:
                re.compile(pattern)
            except re.error as e:
                problems.append(f"page category {category.category}: bad pattern {pattern!r} ({e})")

    if problems:
        raise ConfigInvalidError("Invalid scoring rules: " + "; ".join(problems))
