"""Patient records: storage, report export and the tools built on them."""

from clinical_agents.tools import FunctionTool, integer_param, object_schema, string_param

from .report import (
    SAVE_REPORT_DESCRIPTION,
    MarkdownReportExporter,
    sanitize_patient_name,
)
from .store import (
    GET_PATIENT_DATA_DESCRIPTION,
    UPSERT_PATIENT_RECORD_DESCRIPTION,
    InMemoryPatientStore,
    PatientRecordTools,
    PatientStore,
)


def build_patient_tools(
    store: PatientStore, exporter: MarkdownReportExporter
) -> list[FunctionTool]:
    """Tools handed to the persistence specialist."""
    records = PatientRecordTools(store)
    return [
        FunctionTool(
            name="get_patient_data",
            description=GET_PATIENT_DATA_DESCRIPTION,
            func=records.get_patient_data,
            parameters=object_schema(
                {"name": string_param("The patient's full name to search for")},
                required=["name"],
            ),
        ),
        FunctionTool(
            name="upsert_patient_record",
            description=UPSERT_PATIENT_RECORD_DESCRIPTION,
            func=records.upsert_patient_record,
            parameters=object_schema(
                {
                    "full_name": string_param("The patient's full name"),
                    "room": string_param("Room number or identifier (optional)"),
                    "age": integer_param("Patient age in years (optional)"),
                    "medical_history": string_param(
                        "Comma-separated list of chronic conditions as acronyms (HTA, DL, ICC, etc.), "
                        "allergies (e.g. Allergy:Penicillin) and ongoing medications (e.g. Med:Metformin)"
                    ),
                    "current_diagnosis": string_param("Full-text current diagnosis - NO acronyms"),
                    "evolution": string_param("Clinical evolution: Good, Stable, or Bad"),
                    "plan": string_param(
                        "Comma-separated list of plan items: treatments, pending tests, procedures, "
                        "consultations, discharge or transfer"
                    ),
                    "observations": string_param(
                        "Clinical information that fits no other field (vital signs, social history)"
                    ),
                },
                required=["full_name"],
            ),
        ),
        FunctionTool(
            name="save_report",
            description=SAVE_REPORT_DESCRIPTION,
            func=exporter.save_report,
            parameters=object_schema(
                {
                    "report_content": string_param("The full text content of the medical report"),
                    "patient_name": string_param(
                        "The patient's actual full name from the conversation. "
                        "Use 'Unknown_Patient' ONLY if no name was provided."
                    ),
                },
                required=["report_content"],
            ),
        ),
    ]


__all__ = [
    # Store
    "PatientStore",
    "InMemoryPatientStore",
    "PatientRecordTools",
    # Report
    "MarkdownReportExporter",
    "sanitize_patient_name",
    # Tools
    "build_patient_tools",
]
