# src/matching/field_aliases.py - v1
"""Field-name aliases for identity fields in extracted data.

Key names vary across OCR runs and prompts; each identity field has an
ordered alias list and the first alias holding a non-empty value wins.
"""

from __future__ import annotations

from typing import Any

CHINESE_NAME_ALIASES: tuple[str, ...] = (
    "中文姓名", "院友姓名", "姓名", "病人姓名", "name_zh", "chinese_name", "patient_name",
)
ENGLISH_NAME_ALIASES: tuple[str, ...] = (
    "英文姓名", "English_Name", "english_name", "name_en",
)
ID_NUMBER_ALIASES: tuple[str, ...] = (
    "身份證號碼", "身份證", "HKID", "hkid", "id_number", "id_card",
)
BIRTH_DATE_ALIASES: tuple[str, ...] = (
    "出生日期", "Birth_Date", "birth_date", "date_of_birth", "dob",
)
AGE_ALIASES: tuple[str, ...] = ("年齡", "Age", "age")


def first_value(fields: dict[str, Any], aliases: tuple[str, ...]) -> str | None:
    """Return the first non-empty alias value, stripped, as a string."""
    for alias in aliases:
        value = fields.get(alias)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return None
