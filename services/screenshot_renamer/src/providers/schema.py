"""Function-calling schema for the screenshot rename operation."""

from typing import Any

RENAME_FUNCTION_NAME = "rename_screenshot"

RENAME_FUNCTION: dict[str, Any] = {
    "name": RENAME_FUNCTION_NAME,
    "description": "Return new file name and category for a screenshot",
    "parameters": {
        "type": "object",
        "properties": {
            "category": {
                "type": "string",
                "description": "Image category, must match predefined categories",
            },
            "filename": {
                "type": "string",
                "description": "Suggested filename without extension, dash-separated words (1-3 words)",
            },
        },
        "required": ["filename"],
    },
}

RENAME_TOOL: dict[str, Any] = {"type": "function", "function": RENAME_FUNCTION}

# Appended to the prompt for the free-text stage
JSON_ONLY_INSTRUCTION = (
    'Respond ONLY with JSON in the format: {"filename": "suggested-name", "category": "optional-category"}'
)
