"""
Rule-based document analysis.

Deterministic and offline: no LLM call is made here. analyze() classifies the
document, extracts entity spans, pulls structured key information for the
document type and writes a short templated summary.

Keyword and pattern data lives in analysis_data.py.
"""

from __future__ import annotations

import re
from collections.abc import Iterable

from sophera.documents.analysis_data import (
    CLASSIFICATION_RULES,
    DIAGNOSIS_PATTERNS,
    GENERIC_DATE_PATTERN,
    HEMOGLOBIN_LOW,
    IMAGING_FINDINGS_HEADER,
    LAB_ENTITY_TESTS,
    LAB_TESTS,
    LABELED_DATE_PATTERNS,
    MEDICATION_PATTERNS,
    NOTES_SECTION_HEADERS,
    PLATELETS_LOW,
    PROCEDURE_PATTERNS,
    SECTION_MIN_LENGTH,
    SUMMARY_LIST_LIMIT,
    WBC_RANGE,
)
from sophera.documents.models import DatedItem, DocumentAnalysis, DocumentType, Entity, KeyInfo
from sophera.observability.logging import get_logger
from sophera.observability.telemetry import counter

logger = get_logger(__name__)

_SECTION_ITEM_SPLIT = re.compile(r"\n|\d+\.|\*|•")
_FINDING_SPLIT = re.compile(r"\d+\.|•")


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # Word boundaries only where the keyword starts/ends with a word character
    start = r"\b" if keyword[0].isalnum() else ""
    end = r"\b" if keyword[-1].isalnum() else ""
    return re.compile(f"{start}{re.escape(keyword)}{end}", re.IGNORECASE)


_CLASSIFIERS: tuple[tuple[DocumentType, tuple[re.Pattern[str], ...]], ...] = tuple(
    (DocumentType(doc_type), tuple(_keyword_pattern(k) for k in keywords))
    for doc_type, keywords in CLASSIFICATION_RULES
)


def classify_document_type(content: str) -> DocumentType:
    """First matching type in the order lab_report, imaging, notes, book; else other."""
    for doc_type, patterns in _CLASSIFIERS:
        if any(p.search(content) for p in patterns):
            return doc_type
    return DocumentType.OTHER


def _match_entities(
    content: str,
    patterns: Iterable[re.Pattern[str]],
    entity_type: str,
    seen: set[tuple[int, int]],
) -> list[Entity]:
    entities = []
    for pattern in patterns:
        for match in pattern.finditer(content):
            span = match.span()
            if span in seen:
                continue
            seen.add(span)
            entities.append(
                Entity(
                    type=entity_type,
                    text=match.group(0),
                    start=span[0],
                    end=span[1],
                    category=entity_type,
                )
            )
    return entities


def extract_entities(content: str) -> list[Entity]:
    """
    Medication, lab value, diagnosis and procedure spans, in that order.

    A span matched by two patterns of the same type is reported once.
    """
    entities: list[Entity] = []
    for entity_type, patterns in (
        ("medication", MEDICATION_PATTERNS),
        ("lab_value", [LAB_TESTS[name] for name in LAB_ENTITY_TESTS]),
        ("diagnosis", DIAGNOSIS_PATTERNS),
        ("procedure", PROCEDURE_PATTERNS),
    ):
        entities.extend(_match_entities(content, patterns, entity_type, set()))
    return entities


def extract_lab_values(content: str) -> dict[str, float]:
    """First value found for each known lab test."""
    values: dict[str, float] = {}
    for name, pattern in LAB_TESTS.items():
        match = pattern.search(content)
        if match:
            values[name] = float(match.group("value"))
    return values


def _section_text(content: str, header: re.Pattern[str]) -> str | None:
    """Text after header up to the next blank line (or end of document)."""
    match = header.search(content)
    if not match:
        return None
    start = match.end()
    end = content.find("\n\n", start)
    return content[start:end] if end > start else content[start:]


def _split_items(text: str, splitter: re.Pattern[str], min_length: int) -> list[str]:
    return [item.strip() for item in splitter.split(text) if len(item.strip()) > min_length]


def extract_imaging_findings(content: str) -> list[str]:
    text = _section_text(content, IMAGING_FINDINGS_HEADER)
    if text is None:
        return []
    return _split_items(text, _FINDING_SPLIT, SECTION_MIN_LENGTH["findings"])


def extract_note_section(content: str, section: str) -> list[str]:
    """
    Items listed under a clinical-note section ("diagnoses", "medications",
    "procedures"). Header patterns are tried in order; the first one that
    yields items wins.
    """
    for header in NOTES_SECTION_HEADERS[section]:
        text = _section_text(content, header)
        if text is None:
            continue
        items = _split_items(text, _SECTION_ITEM_SPLIT, SECTION_MIN_LENGTH[section])
        if items:
            return items
    return []


def extract_health_metrics(content: str) -> dict[str, float | None]:
    """Vital signs from a clinical note; weight in kg, temperature in Celsius."""
    metrics: dict[str, float | None] = {
        "weight": None,
        "temperature": None,
        "blood_pressure_systolic": None,
        "blood_pressure_diastolic": None,
        "heart_rate": None,
        "oxygen_saturation": None,
    }

    weight = re.search(r"weight[:\s]+(\d+(?:\.\d+)?)\s*(kg|lbs?)\b", content, re.IGNORECASE)
    if weight:
        value = float(weight.group(1))
        if weight.group(2).lower().startswith("lb"):
            value *= 0.453592
        metrics["weight"] = round(value, 1)

    temperature = re.search(
        r"temp(?:erature)?[:\s]+(\d+(?:\.\d+)?)[°\s]*([CF])\b", content, re.IGNORECASE
    )
    if temperature:
        value = float(temperature.group(1))
        if temperature.group(2).upper() == "F":
            value = (value - 32) * 5 / 9
        metrics["temperature"] = round(value, 1)

    blood_pressure = re.search(
        r"(?:blood pressure|\bBP)[:\s]+(\d+)[/\\](\d+)", content, re.IGNORECASE
    )
    if blood_pressure:
        metrics["blood_pressure_systolic"] = float(blood_pressure.group(1))
        metrics["blood_pressure_diastolic"] = float(blood_pressure.group(2))

    heart_rate = re.search(r"(?:heart rate|pulse|\bHR)[:\s]+(\d+)", content, re.IGNORECASE)
    if heart_rate:
        metrics["heart_rate"] = float(heart_rate.group(1))

    oxygen = re.search(
        r"(?:oxygen saturation|O2 sat|SpO2)[:\s]+(\d+)%?", content, re.IGNORECASE
    )
    if oxygen:
        metrics["oxygen_saturation"] = float(oxygen.group(1))

    return metrics


def extract_dates(content: str) -> list[DatedItem]:
    """
    Labeled dates (report, service, collection, diagnosis, procedure), one per
    label type. Without any labeled date, every date-looking string is
    returned as "unknown_date".
    """
    dates = []
    for date_type, pattern in LABELED_DATE_PATTERNS:
        match = pattern.search(content)
        if match:
            dates.append(DatedItem(type=date_type, date=match.group("date")))

    if not dates:
        dates = [
            DatedItem(type="unknown_date", date=match.group(0))
            for match in GENERIC_DATE_PATTERN.finditer(content)
            if len(match.group(0)) >= 8
        ]
    return dates


def extract_key_info(content: str, doc_type: DocumentType) -> KeyInfo:
    key_info = KeyInfo(dates=extract_dates(content))

    if doc_type == DocumentType.LAB_REPORT:
        key_info.lab_values = extract_lab_values(content)
    elif doc_type == DocumentType.IMAGING:
        key_info.diagnoses = extract_imaging_findings(content)
    elif doc_type == DocumentType.NOTES:
        key_info.diagnoses = extract_note_section(content, "diagnoses")
        key_info.medications = extract_note_section(content, "medications")
        key_info.procedures = extract_note_section(content, "procedures")
        key_info.health_metrics = extract_health_metrics(content)

    return key_info


def _append_list(summary: str, heading: str, items: list[str], noun: str) -> str:
    if not items:
        return summary
    summary += heading
    for item in items[:SUMMARY_LIST_LIMIT]:
        summary += f"\n- {item}"
    if len(items) > SUMMARY_LIST_LIMIT:
        summary += f"\n- Plus {len(items) - SUMMARY_LIST_LIMIT} additional {noun}"
    return summary


def _date_suffix(key_info: KeyInfo) -> str:
    return f" from {key_info.dates[0].date}" if key_info.dates else ""


def _lab_report_summary(key_info: KeyInfo) -> str:
    labs = key_info.lab_values
    if not labs:
        return "Lab report document with no clear test values extracted."

    abnormal = []
    if "hemoglobin" in labs and labs["hemoglobin"] < HEMOGLOBIN_LOW:
        abnormal.append(f"low hemoglobin ({labs['hemoglobin']:g} g/dL)")
    if "wbc" in labs and not WBC_RANGE[0] <= labs["wbc"] <= WBC_RANGE[1]:
        abnormal.append(f"abnormal white blood cell count ({labs['wbc']:g} K/μL)")
    if "platelets" in labs and labs["platelets"] < PLATELETS_LOW:
        abnormal.append(f"low platelet count ({labs['platelets']:g} K/μL)")

    summary = "Lab report document" + _date_suffix(key_info)
    if abnormal:
        return summary + f" showing {', '.join(abnormal)}."
    return summary + (
        " with results extracted. No clearly abnormal values identified from "
        "automatic extraction."
    )


def _imaging_summary(key_info: KeyInfo) -> str:
    findings = key_info.diagnoses
    if not findings:
        return "Imaging report document with no clear findings extracted."

    summary = "Imaging report" + _date_suffix(key_info)
    if len(findings) == 1:
        return summary + f" showing: {findings[0]}"
    return _append_list(summary, " with key findings:", findings, "findings")


def _notes_summary(key_info: KeyInfo) -> str:
    summary = "Clinical note" + _date_suffix(key_info)
    summary = _append_list(summary, "\nDiagnoses:", key_info.diagnoses, "diagnoses")
    summary = _append_list(summary, "\nMedications:", key_info.medications, "medications")
    return _append_list(summary, "\nProcedures:", key_info.procedures, "procedures")


def summarize(doc_type: DocumentType, key_info: KeyInfo) -> str:
    if doc_type == DocumentType.LAB_REPORT:
        return _lab_report_summary(key_info)
    if doc_type == DocumentType.IMAGING:
        return _imaging_summary(key_info)
    if doc_type == DocumentType.NOTES:
        return _notes_summary(key_info)
    if doc_type == DocumentType.BOOK:
        return (
            "Book excerpt containing medical information related to cancer treatment. "
            "The passage contains technical medical terminology and should be reviewed "
            "in context with a healthcare provider."
        )
    return "Document contains medical information that has been analyzed to extract key details."


def analyze(content: str) -> DocumentAnalysis:
    """
    Full analysis of a document's text.

    Side Effects:
        - Increments documents.analyzed.<type> counter
    """
    doc_type = classify_document_type(content)
    entities = extract_entities(content)
    key_info = extract_key_info(content, doc_type)

    counter(f"documents.analyzed.{doc_type.value}")
    logger.debug("Analyzed document: type=%s entities=%d", doc_type.value, len(entities))

    return DocumentAnalysis(
        entities=entities,
        key_info=key_info,
        summary=summarize(doc_type, key_info),
        source_type=doc_type,
    )
