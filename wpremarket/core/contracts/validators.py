"""
JSON Schema Contract Validators

Модуль для валидации снапшотов и событий pool согласно формальным JSON
Schema контрактам. Внешние инструменты (индексаторы, дашборды) получают
dict из PoolState.model_dump(mode="json") / PoolEvent.model_dump(mode="json")
и могут проверить их этими валидаторами.

Схемы (wpremarket/core/contracts/schema/):
- position.json
- pool_state.json
- pool_event.json
"""

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator, ValidationError
from referencing import Registry, Resource


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются внутри пакета (package data) рядом с этим модулем.
    """

    def __init__(self, schema_dir: Path | None = None):
        self._schema_dir = schema_dir or Path(__file__).parent / "schema"
        if not self._schema_dir.exists():
            raise RuntimeError(f"Schema directory not found: {self._schema_dir}")

        # Кэш загруженных схем
        self._schemas: Dict[str, Dict[str, Any]] = {}

    def load_schema(self, schema_name: str) -> Dict[str, Any]:
        """
        Загрузка JSON Schema файла.

        Args:
            schema_name: Имя схемы без расширения (например, 'pool_state')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема не проходит meta-validation
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Валидируем саму схему (meta-validation)
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}") from e

        self._schemas[schema_name] = schema
        return schema

    def registry(self) -> Registry:
        """
        Registry всех схем каталога для разрешения $ref между файлами.

        pool_state.json ссылается на position.json по имени файла.
        """
        resources = []
        for schema_path in sorted(self._schema_dir.glob("*.json")):
            schema = self.load_schema(schema_path.stem)
            resources.append((schema_path.name, Resource.from_contents(schema)))
        return Registry().with_resources(resources)


# Глобальный экземпляр загрузчика
_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# CONTRACT VALIDATORS
# =============================================================================


class ContractValidator:
    """
    Базовый класс для валидаторов контрактов.

    Инкапсулирует логику валидации данных против JSON Schema.
    """

    def __init__(self, schema_name: str):
        self.schema_name = schema_name
        self.schema = _SCHEMA_LOADER.load_schema(schema_name)
        self.validator = Draft202012Validator(
            self.schema, registry=_SCHEMA_LOADER.registry()
        )

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Валидация данных против схемы.

        Raises:
            ValidationError: Если данные не соответствуют схеме
        """
        self.validator.validate(data)

    def is_valid(self, data: Dict[str, Any]) -> bool:
        """Проверка валидности данных без exception."""
        return self.validator.is_valid(data)

    def iter_errors(self, data: Dict[str, Any]):
        """Итератор по всем ошибкам валидации."""
        return self.validator.iter_errors(data)


class PositionValidator(ContractValidator):
    """Валидатор для position контракта."""

    def __init__(self):
        super().__init__("position")


class PoolStateValidator(ContractValidator):
    """Валидатор для pool_state контракта."""

    def __init__(self):
        super().__init__("pool_state")


class PoolEventValidator(ContractValidator):
    """Валидатор для pool_event контракта."""

    def __init__(self):
        super().__init__("pool_event")


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================


def validate_position(data: Dict[str, Any]) -> None:
    """
    Валидация position данных.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    PositionValidator().validate(data)


def validate_pool_state(data: Dict[str, Any]) -> None:
    """
    Валидация pool_state данных.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    PoolStateValidator().validate(data)


def validate_pool_event(data: Dict[str, Any]) -> None:
    """
    Валидация pool_event данных.

    Raises:
        ValidationError: Если данные не соответствуют схеме
    """
    PoolEventValidator().validate(data)


__all__ = [
    "SchemaLoader",
    "ContractValidator",
    "PositionValidator",
    "PoolStateValidator",
    "PoolEventValidator",
    "ValidationError",
    "validate_position",
    "validate_pool_state",
    "validate_pool_event",
]
