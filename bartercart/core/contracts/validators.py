"""
JSON Schema Contract Validators

Модуль для валидации метаданных trade offer согласно формальной JSON Schema.
Использует библиотеку jsonschema для проверки соответствия данных схеме.

Схемы (bartercart/core/contracts/schema/):
- offer_descriptor.json — метаданные построенного offer
"""

import json
from pathlib import Path
from typing import Any, Dict

import jsonschema
from jsonschema import Draft202012Validator, ValidationError
from jsonschema.exceptions import best_match


# =============================================================================
# SCHEMA LOADER
# =============================================================================


class SchemaLoader:
    """
    Загрузчик JSON Schema файлов.

    Схемы поставляются вместе с пакетом в contracts/schema/.
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
            schema_name: Имя схемы без расширения (например, 'offer_descriptor')

        Returns:
            Загруженная схема как dict

        Raises:
            FileNotFoundError: Если файл схемы не найден
            ValueError: Если схема сама по себе невалидна
        """
        if schema_name in self._schemas:
            return self._schemas[schema_name]

        schema_path = self._schema_dir / f"{schema_name}.json"
        if not schema_path.exists():
            raise FileNotFoundError(f"Schema not found: {schema_path}")

        with open(schema_path, "r", encoding="utf-8") as f:
            schema = json.load(f)

        # Meta-validation
        try:
            Draft202012Validator.check_schema(schema)
        except jsonschema.SchemaError as e:
            raise ValueError(f"Invalid JSON Schema in {schema_name}.json: {e}")

        self._schemas[schema_name] = schema
        return schema


_SCHEMA_LOADER = SchemaLoader()


# =============================================================================
# OFFER METADATA
# =============================================================================


class OfferMetadataValidator:
    """
    Валидатор метаданных offer (OfferDescriptor.to_metadata()).

    Кроме схемы проверяет согласованность itemsCount с содержимым dict:
    JSON Schema не умеет сравнивать поля между собой.
    """

    SCHEMA_NAME = "offer_descriptor"

    def __init__(self, loader: SchemaLoader | None = None):
        schema = (loader or _SCHEMA_LOADER).load_schema(self.SCHEMA_NAME)
        self._validator = Draft202012Validator(schema)

    def validate(self, data: Dict[str, Any]) -> None:
        """
        Raises:
            ValidationError: Наиболее релевантное нарушение схемы или
                расхождение itemsCount с dict
        """
        error = best_match(self._validator.iter_errors(data))
        if error is not None:
            raise error

        for side, entries in data["dict"].items():
            total = sum(entry["amount"] for entry in entries.values())
            counted = data["itemsCount"][side]
            if counted != total:
                raise ValidationError(
                    f"itemsCount.{side} is {counted} but dict.{side} holds {total} items",
                    path=["itemsCount", side],
                )


_OFFER_METADATA_VALIDATOR = OfferMetadataValidator()


def validate_offer_metadata(data: Dict[str, Any]) -> None:
    """
    Валидация метаданных offer.

    Raises:
        ValidationError: Если данные не соответствуют контракту
    """
    _OFFER_METADATA_VALIDATOR.validate(data)
