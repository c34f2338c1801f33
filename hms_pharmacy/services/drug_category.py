# FILE: hms_pharmacy/services/drug_category.py
from __future__ import annotations

import re
from typing import Optional, Sequence, Tuple

DEFAULT_CATEGORY = "General Medicine"

# Ordered: a name can hit several groups, the first one listed wins.
CATEGORY_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("Antibiotics", ("antibiotic", "amox", "azith", "cef", "augmentin", "levoflox")),
    ("Cardiovascular", ("amlodipine", "atenolol", "metoprolol", "losartan")),
    ("Pain Management", ("paracetamol", "ibuprofen", "diclofenac", "ketorol")),
    ("Vitamins & Supplements", ("vitamin", "multivitamin", "zinc", "calcium")),
    ("Gastrointestinal", ("pantoprazole", "omeprazole", "ranitidine")),
    ("Respiratory", ("salbutamol", "montelukast")),
    ("Diabetes", ("metformin", "glimepiride")),
    ("Neurology", ("levetiracetam", "phenytoin")),
)

# Dosage-form hints read from the name / combination / product columns.
# Short route codes only count as whole words ("im" must not hit "glimepiride").
DOSAGE_FORM_KEYWORDS: Sequence[Tuple[str, Tuple[str, ...]]] = (
    ("Injectable", ("injection", "inj", "iv", "im", "vial", "ampoule")),
    ("Tablet", ("tablet", "tab")),
    ("Capsule", ("capsule", "cap")),
    ("Liquid", ("syrup", "suspension", "liquid")),
    ("Topical", ("cream", "ointment", "gel")),
    ("Drops", ("drop", "drops", "eye", "ear")),
    ("Respiratory", ("inhaler", "nebulizer", "rotacap")),
    ("Powder", ("powder", "sachet")),
)

_WORD_ONLY = {"iv", "im", "inj", "tab", "cap", "eye", "ear", "gel"}

UNIT_BY_FORM = {
    "Injectable": "ampoules",
    "Tablet": "tablets",
    "Capsule": "capsules",
    "Liquid": "bottles",
}


def derive_category(name: Optional[str], generic_or_combination: Optional[str] = None) -> str:
    text = f"{(name or '').lower()} {(generic_or_combination or '').lower()}"
    for category, keywords in CATEGORY_KEYWORDS:
        if any(k in text for k in keywords):
            return category
    return DEFAULT_CATEGORY


def _has_keyword(text: str, words: set, keyword: str) -> bool:
    if keyword in _WORD_ONLY:
        return keyword in words
    return keyword in text


def derive_dosage_form(name: Optional[str], combination: Optional[str] = None,
                       product: Optional[str] = None) -> Optional[str]:
    text = " ".join(x for x in (name, combination, product) if x).lower()
    words = set(re.findall(r"[a-z]+", text))
    for form, keywords in DOSAGE_FORM_KEYWORDS:
        if any(_has_keyword(text, words, k) for k in keywords):
            return form
    return None


def derive_unit(dosage_form: Optional[str]) -> str:
    return UNIT_BY_FORM.get(dosage_form or "", "units")
