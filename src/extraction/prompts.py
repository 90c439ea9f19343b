# src/extraction/prompts.py - v1
"""Built-in prompts for AI field extraction and document classification.

Field names are the Chinese keys the matcher and classifier understand;
English aliases are accepted too, so custom prompts may use either.
"""

from __future__ import annotations

DEFAULT_EXTRACTION_PROMPT = """你是醫療文件資料擷取的專家。請根據以下OCR識別的文本，提取院友及文件資料。

提取時必須嚴格遵守以下規則：
1. 日期必須為YYYY-MM-DD格式，時間必須為24小時制HH:MM格式
2. 身份證號碼保留原樣，被遮蓋的字元以X表示，例如 "AXX8686(X)"
3. 姓名不要包含稱謂或括號內的附註
4. 文本中沒有的欄位可以省略，不得猜測

請以JSON格式返回以下欄位（適用者）：
{
  "中文姓名": "陳大文",
  "英文姓名": "CHAN TAI MAN",
  "身份證號碼": "A123456(7)",
  "出生日期": "1940-01-31",
  "年齡": "84",
  "疫苗名稱": "季節性流感疫苗",
  "注射日期": "2024-09-15",
  "注射單位": "衞生署",
  "覆診日期": "2024-10-02",
  "覆診時間": "09:30",
  "覆診地點": "瑪麗醫院",
  "專科": "內科",
  "診斷項目": "高血壓",
  "診斷日期": "2024-08-20",
  "備註": ""
}"""

DEFAULT_CLASSIFICATION_PROMPT = """同時判斷文件類型，只可從以下選項中選擇：
- "vaccination": 疫苗接種記錄
- "followup": 覆診預約便條
- "diagnosis": 診斷記錄
- "unknown": 無法判斷

在JSON中加入 "classification" 欄位：
{"type": "vaccination", "confidence": 0-100的整數, "reasoning": "簡短理由"}"""

RESPONSE_FORMAT_INSTRUCTIONS = """Return one JSON object with this shape:
{
  "extracted_data": { <field name>: <value>, ... },
  "confidence_scores": { <field name>: <integer 0-100>, ... }
}"""

CLASSIFICATION_FORMAT_INSTRUCTIONS = """Also include a top-level "classification" key:
{"type": <one of "vaccination", "followup", "diagnosis", "unknown">,
 "confidence": <integer 0-100>, "reasoning": <short string>}"""

SYSTEM_PROMPT = (
    "You extract structured data from OCR text of medical documents. "
    "Never invent values that are not present in the text. Return only valid JSON."
)


def build_user_prompt(
    ocr_text: str,
    prompt: str,
    classification_prompt: str | None = None,
) -> str:
    """Assemble the user message sent to the extraction model."""
    sections = [prompt.strip()]
    if classification_prompt:
        sections.append(classification_prompt.strip())
    sections.append(RESPONSE_FORMAT_INSTRUCTIONS)
    if classification_prompt:
        sections.append(CLASSIFICATION_FORMAT_INSTRUCTIONS)
    sections.append(f"OCR text:\n\"\"\"\n{ocr_text}\n\"\"\"")
    return "\n\n".join(sections)
