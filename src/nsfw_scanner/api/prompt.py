from pydantic import BaseModel, Field
from typing import List

"""
Prompt and response schema for NSFW classification.
"""

class CategoryScore(BaseModel):
    label: str
    confidence: float = Field(ge=0.0, le=1.0)


class ClassificationResponse(BaseModel):
    categories: List[CategoryScore]

    def score_for(self, label: str):
        """Return the confidence for `label`, or None if the model did not report it."""
        for category in self.categories:
            if category.label == label:
                return category.confidence
        return None


RESPONSE_SCHEMA = ClassificationResponse.model_json_schema()

JSON_SCHEMA = {
    "name": "nsfw_classification",
    "strict": False,
    "schema": RESPONSE_SCHEMA,
}


PROMPT_TEMPLATE = """
You are a content-safety classifier. Score the attached image for each category below.

OUTPUT (STRICT JSON ONLY)
{
  "categories": [
    {"label": "NSFW", "confidence": <0..1>},
    {"label": "SFW", "confidence": <0..1>}
  ]
}
Rules:
- NSFW: nudity, sexual content, or sexually suggestive material.
- SFW: everything else.
- Confidences must each be 0..1, rounded to two decimals, and sum to exactly 1.00.
- Use the labels exactly as written. No extra text/markdown. JSON only.
""".strip()
