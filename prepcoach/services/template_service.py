"""
Built-in interview templates and the default question pool, loaded from prepcoach/data.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

DATA_DIR = Path(__file__).resolve().parent.parent / "data"


@lru_cache()
def load_templates() -> List[dict]:
    with open(DATA_DIR / "interview_templates.json", encoding="utf-8") as f:
        return json.load(f)


@lru_cache()
def load_default_questions() -> List[dict]:
    with open(DATA_DIR / "default_questions.json", encoding="utf-8") as f:
        return json.load(f)


def list_templates(category: Optional[str] = None, difficulty: Optional[str] = None,
                   role: Optional[str] = None) -> List[dict]:
    templates = load_templates()
    if category:
        templates = [t for t in templates if t["category"] == category]
    if difficulty:
        templates = [t for t in templates if t["difficulty"] == difficulty]
    if role:
        templates = [t for t in templates if role.lower() in t["role"].lower()]
    return templates


def get_template(template_id: str) -> Optional[dict]:
    return next((t for t in load_templates() if t["id"] == template_id), None)
