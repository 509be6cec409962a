"""
Module: analysis_data
Purpose: Keyword and pattern constants for the rule-based document analyzer.
Dependencies: None (pure data, no imports beyond re)

Separates analysis policy data from the matching logic in analyzer.py. Edit
this file to add terms or lab tests without touching the algorithm.
"""

from __future__ import annotations

import re

# ---------------------------------------------------------------------------
# Document type classification
# Checked in order; the first type with any keyword hit wins.
# Short terms are matched on word boundaries ("lab" must not hit "label").
# ---------------------------------------------------------------------------

CLASSIFICATION_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    (
        "lab_report",
        (
            "lab",
            "labs",
            "test results",
            "laboratory report",
            "cbc",
            "complete blood count",
            "chemistry panel",
            "reference range",
        ),
    ),
    (
        "imaging",
        (
            "ct scan",
            "mri",
            "pet",
            "imaging",
            "radiology",
            "ultrasound",
            "impression:",
            "findings:",
        ),
    ),
    (
        "notes",
        (
            "progress note",
            "follow-up",
            "physical examination",
            "assessment",
            "plan:",
            "chief complaint:",
        ),
    ),
    (
        "book",
        (
            "isbn",
            "chapter",
            "book",
            "edition",
            "copyright",
            "published",
        ),
    ),
)

# ---------------------------------------------------------------------------
# Entity patterns, grouped by entity type
# ---------------------------------------------------------------------------

MEDICATION_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b\w+umab\b", re.IGNORECASE),  # monoclonal antibodies
    re.compile(r"\b\w+tinib\b", re.IGNORECASE),  # tyrosine kinase inhibitors
    re.compile(r"\b\w+ciclib\b", re.IGNORECASE),  # CDK4/6 inhibitors
    re.compile(r"\b\w+olimus\b", re.IGNORECASE),  # mTOR inhibitors
    re.compile(r"\b\w+afenib\b", re.IGNORECASE),  # kinase inhibitors
    re.compile(r"\b(?:5-FU|5-fluorouracil)\b", re.IGNORECASE),
    re.compile(r"\b(?:carboplatin|cisplatin|oxaliplatin)\b", re.IGNORECASE),
    re.compile(r"\b(?:docetaxel|paclitaxel)\b", re.IGNORECASE),
    re.compile(r"\b(?:capecitabine|leucovorin|folfox|flot)\b", re.IGNORECASE),
)

DIAGNOSIS_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"\besophageal (?:cancer|carcinoma|adenocarcinoma|squamous cell carcinoma|scc)\b",
        re.IGNORECASE,
    ),
    re.compile(r"\bmetastatic (?:cancer|carcinoma|disease)\b", re.IGNORECASE),
    re.compile(r"\bstage (?:IV|III|II|I)[A-C]?\b", re.IGNORECASE),
    re.compile(
        r"\b(?:liver|lung|bone) metastasis\b"
        r"|\bmetastasis to (?:the )?(?:liver|lung|bone|brain)\b",
        re.IGNORECASE,
    ),
)

PROCEDURE_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\b(?:endoscopy|egd|esophagogastroduodenoscopy)\b", re.IGNORECASE),
    re.compile(r"\b(?:ct scan|pet scan|mri)\b", re.IGNORECASE),
    re.compile(r"\b(?:biopsy|fine needle aspiration|fna)\b", re.IGNORECASE),
    re.compile(r"\b(?:esophagectomy|gastrectomy)\b", re.IGNORECASE),
    re.compile(
        r"\b(?:radiation therapy|radiotherapy|external beam radiation)\b", re.IGNORECASE
    ),
    re.compile(r"\b(?:chemotherapy|immunotherapy)\b", re.IGNORECASE),
)

# ---------------------------------------------------------------------------
# Lab tests: key -> "NAME: number unit" pattern (value in group "value")
# ---------------------------------------------------------------------------

_PER_UL = r"(?:k|10\^3)/[μµu]l"

LAB_TESTS: dict[str, re.Pattern[str]] = {
    name: re.compile(
        rf"\b(?:{names})[\s:]+(?P<value>\d+(?:\.\d+)?)\s*{unit}",
        re.IGNORECASE,
    )
    for name, names, unit in (
        ("hemoglobin", r"hemoglobin|hgb|hb", r"g/dl"),
        ("wbc", r"white blood cell count|wbc", _PER_UL),
        ("platelets", r"platelet count|platelets|plt", _PER_UL),
        ("creatinine", r"creatinine|cr", r"mg/dl"),
        ("bun", r"blood urea nitrogen|bun", r"mg/dl"),
        ("alt", r"alanine aminotransferase|alt", r"u/l"),
        ("ast", r"aspartate aminotransferase|ast", r"u/l"),
        ("ca19_9", r"ca 19-9|ca19-9|ca19_9", r"u/ml"),
        ("cea", r"carcinoembryonic antigen|cea", r"ng/ml"),
        ("albumin", r"albumin|alb", r"g/dl"),
        ("total_bilirubin", r"total bilirubin|tbili", r"mg/dl"),
    )
}

# Tests that also produce lab_value entities
LAB_ENTITY_TESTS: tuple[str, ...] = (
    "hemoglobin",
    "wbc",
    "platelets",
    "creatinine",
    "bun",
    "alt",
    "ast",
)

# ---------------------------------------------------------------------------
# Section headers for imaging reports and clinical notes
# ---------------------------------------------------------------------------

IMAGING_FINDINGS_HEADER = re.compile(r"(?:impression|findings):", re.IGNORECASE)

NOTES_SECTION_HEADERS: dict[str, tuple[re.Pattern[str], ...]] = {
    "diagnoses": (
        re.compile(r"(?:diagnosis|assessment|impression):", re.IGNORECASE),
        re.compile(r"problem list:", re.IGNORECASE),
    ),
    "medications": (
        re.compile(r"(?:current medications|medication list|medications):", re.IGNORECASE),
    ),
    "procedures": (
        re.compile(r"(?:procedure list|surgical history|procedures):", re.IGNORECASE),
    ),
}

# Section items shorter than this are dropped
SECTION_MIN_LENGTH: dict[str, int] = {
    "findings": 10,
    "diagnoses": 5,
    "medications": 3,
    "procedures": 5,
}

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

DATE_VALUE = (
    r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\.? \d{1,2},? \d{4}"
    r"|\d{4}-\d{2}-\d{2}"
    r"|\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4}"
)

LABELED_DATE_PATTERNS: tuple[tuple[str, re.Pattern[str]], ...] = tuple(
    (
        date_type,
        re.compile(rf"\b(?:{labels})[\s:]+(?P<date>{DATE_VALUE})", re.IGNORECASE),
    )
    for date_type, labels in (
        ("document_date", r"date of report|report date|date"),
        ("service_date", r"date of service|service date"),
        ("collection_date", r"date collected|collection date|collected on"),
        ("diagnosis_date", r"date of diagnosis|diagnosed on"),
        ("procedure_date", r"procedure date|date of procedure|performed on"),
    )
)

GENERIC_DATE_PATTERN = re.compile(rf"\b(?:{DATE_VALUE})", re.IGNORECASE)

# Abnormal-value thresholds used by the lab report summary
HEMOGLOBIN_LOW = 12.0
WBC_RANGE = (4.0, 11.0)
PLATELETS_LOW = 150.0

SUMMARY_LIST_LIMIT = 3
