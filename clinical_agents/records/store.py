"""Patient record persistence and the tools the secretary uses on it."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from pydantic import ValidationError

from clinical_agents.models import Evolution, PatientRecord, parse_extraction_block, split_items
from clinical_agents.utils.logging import get_logger

logger = get_logger(__name__)

MAX_NAME_LENGTH = 100

GET_PATIENT_DATA_DESCRIPTION = (
    "Retrieves the permanent medical record for a patient from the database. "
    "Returns patient data including room, age, medical history, diagnosis, "
    "evolution, plan, and observations."
)

UPSERT_PATIENT_RECORD_DESCRIPTION = (
    "Creates or updates a patient's medical record in the database. Use this "
    "when ClinicalDataExtractor identifies patient information."
)


@runtime_checkable
class PatientStore(Protocol):
    """Storage seam for patient records, keyed case-insensitively by name."""

    def get(self, name: str) -> PatientRecord | None: ...

    def upsert(self, record: PatientRecord) -> PatientRecord: ...

    def list_all(self) -> list[PatientRecord]: ...


class InMemoryPatientStore:
    """Process-local PatientStore.

    Upserts merge into an existing record: fields left empty in the update
    keep their stored value.
    """

    def __init__(self) -> None:
        self._records: dict[str, PatientRecord] = {}

    @staticmethod
    def _key(name: str) -> str:
        return name.strip().casefold()

    def get(self, name: str) -> PatientRecord | None:
        if not name or not name.strip():
            return None
        return self._records.get(self._key(name))

    def upsert(self, record: PatientRecord) -> PatientRecord:
        key = self._key(record.full_name)
        existing = self._records.get(key)
        stored = existing.merged_with(record) if existing else record
        self._records[key] = stored
        logger.info(
            "Patient record saved",
            patient=stored.full_name,
            created=existing is None,
        )
        return stored

    def list_all(self) -> list[PatientRecord]:
        return sorted(self._records.values(), key=lambda r: r.full_name.casefold())

    def __len__(self) -> int:
        return len(self._records)


class PatientRecordTools:
    """Tool-facing wrapper over a PatientStore.

    Every method returns a plain string for the model; failures become
    ``Error: ...`` strings instead of exceptions.
    """

    def __init__(self, store: PatientStore):
        self._store = store

    @property
    def store(self) -> PatientStore:
        return self._store

    def get_patient_data(self, name: str) -> str:
        """Render a stored record, or explain that the patient is new."""
        if not name or not name.strip():
            return "Error: Patient name cannot be empty."

        try:
            record = self._store.get(name)
        except Exception as e:
            logger.error("Patient lookup failed", patient=name, error=str(e))
            return f"Unexpected error retrieving patient data: {e}"

        if record is None:
            return f"No patient record found for '{name}'. This appears to be a new patient."
        return record.to_display()

    def upsert_patient_record(
        self,
        full_name: str,
        room: str | None = None,
        age: int | None = None,
        medical_history: str | None = None,
        current_diagnosis: str | None = None,
        evolution: str | None = None,
        plan: str | None = None,
        observations: str | None = None,
    ) -> str:
        """Validate tool arguments and save them as a record.

        ``medical_history`` and ``plan`` arrive comma-separated. A multi-line
        ``full_name`` is read as the extractor's labeled block; explicit
        arguments override the fields parsed from it.
        """
        if not full_name or not full_name.strip():
            return "Error: Patient name cannot be empty."

        if "\n" in full_name.strip():
            parsed = parse_extraction_block(full_name)
            if parsed is None:
                return "Error: No 'Patient:' line found in the extraction output."
            logger.info("Reading extraction block", patient=parsed.full_name)
            full_name = parsed.full_name
            room = room or parsed.room
            age = age if age is not None else parsed.age
            medical_history = medical_history or ", ".join(parsed.medical_history)
            current_diagnosis = current_diagnosis or parsed.current_diagnosis
            if not (evolution and evolution.strip()) and parsed.evolution is not None:
                evolution = parsed.evolution.label
            plan = plan or ", ".join(parsed.plan)
            observations = observations or parsed.observations

        if len(full_name) > MAX_NAME_LENGTH:
            return f"Error: Patient name too long (max {MAX_NAME_LENGTH} characters)."

        parsed_evolution = None
        if evolution and evolution.strip():
            try:
                parsed_evolution = Evolution.parse(evolution)
            except ValueError as e:
                return f"Error: {e}"

        try:
            record = PatientRecord(
                full_name=full_name.strip(),
                room=room or None,
                age=age,
                medical_history=split_items(medical_history),
                current_diagnosis=current_diagnosis or None,
                evolution=parsed_evolution,
                plan=split_items(plan),
                observations=observations or None,
            )
        except ValidationError as e:
            return f"Error saving patient data: {e.errors()[0]['msg']}"

        error = record.validation_error()
        if error:
            return f"Error: {error}"

        try:
            self._store.upsert(record)
        except Exception as e:
            logger.error("Patient upsert failed", patient=full_name, error=str(e))
            return f"Unexpected error saving patient data: {e}"

        return f"Success: Patient record for '{record.full_name}' has been saved to the database."

    def list_patients(self) -> str:
        """Numbered registry listing."""
        try:
            records = self._store.list_all()
        except Exception as e:
            logger.error("Patient listing failed", error=str(e))
            return f"Error listing patients: {e}"

        if not records:
            return "No patients found in database."

        lines = ["PATIENT REGISTRY", "=" * 50]
        for count, record in enumerate(records, start=1):
            evolution = record.evolution.label if record.evolution else "Not assessed"
            age = record.age if record.age is not None else "N/A"
            lines.append("")
            lines.append(f"{count}. {record.full_name}")
            lines.append(f"   Room: {record.room or 'N/A'} | Age: {age} | Evolution: {evolution}")
        lines.append("")
        lines.append(f"Total patients: {len(records)}")
        return "\n".join(lines)
