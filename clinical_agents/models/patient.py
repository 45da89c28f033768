"""Patient record model and the extractor output parser."""

import re
from enum import IntEnum

from pydantic import BaseModel, Field

# Acronyms that must never appear in a current diagnosis
DIAGNOSIS_FORBIDDEN_ACRONYMS = ("HTA", "DL", "ICC", "FA", "DM", "COPD", "CHF", "CAD")

_FORBIDDEN_ACRONYM_PATTERNS = [
    re.compile(rf"\b{re.escape(acronym)}\b", re.IGNORECASE)
    for acronym in DIAGNOSIS_FORBIDDEN_ACRONYMS
]

_NOT_MENTIONED = {"", "none", "not mentioned", "n/a", "unknown"}


class Evolution(IntEnum):
    """Clinical trajectory."""

    GOOD = 1
    STABLE = 2
    BAD = 3

    @property
    def label(self) -> str:
        return self.name.capitalize()

    @classmethod
    def parse(cls, value: str) -> "Evolution":
        """Parse 'Good' / 'stable' / 'BAD'.

        Raises:
            ValueError: If the value is not a known evolution
        """
        try:
            return cls[value.strip().upper()]
        except KeyError:
            raise ValueError(
                f"Invalid evolution value '{value}'. Must be: Good, Stable, or Bad."
            ) from None


class PatientRecord(BaseModel):
    """Complete clinical state of one patient."""

    full_name: str = Field(..., description="Patient's full name (primary key)")
    room: str | None = Field(default=None, description="Room number or identifier")
    age: int | None = Field(default=None, description="Age in years")
    medical_history: list[str] = Field(
        default_factory=list, description="Medical history (AP), acronyms allowed"
    )
    current_diagnosis: str | None = Field(
        default=None, description="Current diagnosis (Dx), full text only"
    )
    evolution: Evolution | None = Field(default=None, description="Good, Stable or Bad")
    plan: list[str] = Field(default_factory=list, description="Plan items")
    observations: str | None = Field(default=None, description="Other clinical notes")

    def validation_error(self) -> str | None:
        """Return the first business-rule violation, or None when valid."""
        if not self.full_name or not self.full_name.strip():
            return "Patient name is required"
        if self.age is not None and not 0 <= self.age <= 150:
            return "Age must be between 0 and 150"
        if self.current_diagnosis and any(
            p.search(self.current_diagnosis) for p in _FORBIDDEN_ACRONYM_PATTERNS
        ):
            return "CurrentDiagnosis should not contain acronyms - use full descriptions"
        return None

    @property
    def is_valid(self) -> bool:
        return self.validation_error() is None

    def to_summary(self) -> str:
        summary = f"Patient: {self.full_name}"
        if self.room and self.room.strip():
            summary += f", Room: {self.room}"
        if self.age is not None:
            summary += f", Age: {self.age}"
        if self.evolution is not None:
            summary += f", Evolution: {self.evolution.label}"
        return summary

    def to_display(self) -> str:
        """Labeled-field rendering returned by the patient data tool."""
        plan = (
            "\n".join(f"  - {item}" for item in self.plan)
            if self.plan
            else "  - None documented"
        )
        return "\n".join(
            [
                f"Patient: {self.full_name}",
                f"Room: {self.room or 'Not assigned'}",
                f"Age: {self.age if self.age is not None else 'Unknown'}",
                "Medical History (AP): "
                + (", ".join(self.medical_history) or "None recorded"),
                f"Current Diagnosis (Dx): {self.current_diagnosis or 'Not documented'}",
                "Evolution: "
                + (self.evolution.label if self.evolution else "Not assessed"),
                "Plan:",
                plan,
                f"Observations: {self.observations or 'None'}",
            ]
        )

    def merged_with(self, update: "PatientRecord") -> "PatientRecord":
        """Field-wise merge where the update's non-empty values win."""
        data = self.model_dump()
        for field, value in update.model_dump().items():
            if value not in (None, [], ""):
                data[field] = value
        return PatientRecord.model_validate(data)


def split_items(value: str | None) -> list[str]:
    """Split a comma-separated field, dropping empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


# Extractor output labels mapped to record fields
_LABELS = {
    "patient": "full_name",
    "room": "room",
    "age": "age",
    "medical history (ap)": "medical_history",
    "current diagnosis (dx)": "current_diagnosis",
    "evolution": "evolution",
    "plan": "plan",
    "observations": "observations",
    "clinical summary": None,
}

_LABEL_LINE = re.compile(
    r"^\s*[-*]*\s*(?P<label>Patient|Room|Age|Medical History \(AP\)|"
    r"Current Diagnosis \(Dx\)|Evolution|Plan|Observations|Clinical Summary)"
    r"\s*:\s*(?P<value>.*)$",
    re.IGNORECASE,
)


def parse_extraction_block(text: str) -> PatientRecord | None:
    """Parse the extractor's labeled-field output into a PatientRecord.

    Continuation lines (e.g. ``- item`` bullets under ``Plan:``) are folded
    into the preceding field. Values such as "not mentioned" are treated as
    absent.

    Args:
        text: Extractor output

    Returns:
        The parsed record, or None when no ``Patient:`` line is present
    """
    values: dict[str, list[str]] = {}
    current: str | None = None

    for line in text.splitlines():
        match = _LABEL_LINE.match(line)
        if match:
            current = _LABELS[match.group("label").lower()]
            if current is not None:
                values.setdefault(current, [])
                value = match.group("value").strip()
                if value:
                    values[current].append(value)
            continue
        stripped = line.strip().lstrip("-*").strip()
        if current is not None and stripped and stripped != "Analysis complete.":
            values[current].append(stripped)

    name_parts = values.get("full_name")
    if not name_parts:
        return None

    def scalar(field: str) -> str | None:
        joined = " ".join(values.get(field, [])).strip()
        return None if joined.lower().rstrip(".") in _NOT_MENTIONED else joined

    age_text = scalar("age")
    age_match = re.search(r"\d+", age_text) if age_text else None

    evolution_text = scalar("evolution")
    evolution = None
    if evolution_text:
        word = re.match(r"[A-Za-z]+", evolution_text)
        try:
            evolution = Evolution.parse(word.group(0)) if word else None
        except ValueError:
            evolution = None

    def items(field: str) -> list[str]:
        parsed: list[str] = []
        for part in values.get(field, []):
            parsed.extend(split_items(part))
        return [p for p in parsed if p.lower() not in _NOT_MENTIONED]

    return PatientRecord(
        full_name=name_parts[0],
        room=scalar("room"),
        age=int(age_match.group(0)) if age_match else None,
        medical_history=items("medical_history"),
        current_diagnosis=scalar("current_diagnosis"),
        evolution=evolution,
        plan=items("plan"),
        observations=scalar("observations"),
    )
