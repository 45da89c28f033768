"""Unit tests for patient storage, record tools and report export."""

from datetime import datetime

import pytest

from clinical_agents.models import Evolution, PatientRecord
from clinical_agents.records import (
    InMemoryPatientStore,
    MarkdownReportExporter,
    PatientRecordTools,
    PatientStore,
    build_patient_tools,
    sanitize_patient_name,
)

FIXED_NOW = datetime(2024, 3, 5, 14, 30, 15)
REPORT = "Patient John Doe was admitted with community-acquired pneumonia and is improving."


class TestInMemoryPatientStore:
    """Tests for InMemoryPatientStore."""

    def test_satisfies_protocol(self):
        assert isinstance(InMemoryPatientStore(), PatientStore)

    def test_lookup_is_case_insensitive(self):
        store = InMemoryPatientStore()
        store.upsert(PatientRecord(full_name="John Doe", room="12B"))

        assert store.get("john doe").room == "12B"
        assert store.get("  JOHN DOE ").room == "12B"
        assert store.get("Jane Roe") is None
        assert store.get("") is None

    def test_upsert_merges(self):
        store = InMemoryPatientStore()
        store.upsert(PatientRecord(full_name="John Doe", room="12B", age=67))

        stored = store.upsert(PatientRecord(full_name="john doe", evolution=Evolution.GOOD))

        assert len(store) == 1
        assert stored.room == "12B"
        assert stored.age == 67
        assert stored.evolution is Evolution.GOOD

    def test_list_sorted_by_name(self):
        store = InMemoryPatientStore()
        for name in ["maria Lopez", "Ana Ruiz", "Carlos Diaz"]:
            store.upsert(PatientRecord(full_name=name))

        assert [r.full_name for r in store.list_all()] == ["Ana Ruiz", "Carlos Diaz", "maria Lopez"]


class TestPatientRecordTools:
    """Tests for the tool-facing record operations."""

    @pytest.fixture
    def tools(self):
        return PatientRecordTools(InMemoryPatientStore())

    def test_get_new_patient(self, tools):
        assert tools.get_patient_data("John Doe") == (
            "No patient record found for 'John Doe'. This appears to be a new patient."
        )

    def test_get_empty_name(self, tools):
        assert tools.get_patient_data(" ") == "Error: Patient name cannot be empty."

    def test_upsert_then_get(self, tools):
        result = tools.upsert_patient_record(
            full_name=" John Doe ",
            room="12B",
            age=67,
            medical_history="HTA, DL",
            current_diagnosis="Community-acquired pneumonia",
            evolution="stable",
            plan="Ceftriaxone, Chest X-ray",
        )

        assert result == "Success: Patient record for 'John Doe' has been saved to the database."
        display = tools.get_patient_data("john doe")
        assert display.startswith("Patient: John Doe\nRoom: 12B\nAge: 67\n")
        assert "Medical History (AP): HTA, DL" in display
        assert "Evolution: Stable" in display
        assert "  - Chest X-ray" in display

    def test_upsert_rejects_empty_name(self, tools):
        assert tools.upsert_patient_record(full_name="") == "Error: Patient name cannot be empty."

    def test_upsert_rejects_long_name(self, tools):
        assert tools.upsert_patient_record(full_name="x" * 101) == (
            "Error: Patient name too long (max 100 characters)."
        )
        assert tools.upsert_patient_record(full_name="x" * 100).startswith("Success")

    def test_upsert_rejects_bad_evolution(self, tools):
        assert tools.upsert_patient_record(full_name="John Doe", evolution="Improving") == (
            "Error: Invalid evolution value 'Improving'. Must be: Good, Stable, or Bad."
        )

    def test_upsert_rejects_acronym_in_diagnosis(self, tools):
        result = tools.upsert_patient_record(full_name="John Doe", current_diagnosis="FA with RVR")

        assert result == "Error: CurrentDiagnosis should not contain acronyms - use full descriptions"
        assert len(tools.store) == 0

    def test_upsert_rejects_age_out_of_range(self, tools):
        assert tools.upsert_patient_record(full_name="John Doe", age=200) == (
            "Error: Age must be between 0 and 150"
        )

    def test_upsert_reports_type_errors(self, tools):
        result = tools.upsert_patient_record(full_name="John Doe", age="sixty")
        assert result.startswith("Error saving patient data: ")

    def test_upsert_from_extraction_block(self, tools):
        block = "\n".join(
            [
                "Patient: Maria Lopez",
                "Room: 4A",
                "Age: 81",
                "Medical History (AP): HTA, DM",
                "Current Diagnosis (Dx): Heart failure with reduced ejection fraction",
                "Evolution: Stable",
                "Plan:",
                "- Furosemide",
                "- Daily weights",
                "Observations: not mentioned",
            ]
        )

        result = tools.upsert_patient_record(full_name=block, room="5C")

        assert result == "Success: Patient record for 'Maria Lopez' has been saved to the database."
        record = tools.store.get("Maria Lopez")
        assert record.room == "5C"
        assert record.age == 81
        assert record.medical_history == ["HTA", "DM"]
        assert record.evolution is Evolution.STABLE
        assert record.plan == ["Furosemide", "Daily weights"]
        assert record.observations is None

    def test_upsert_block_without_patient_line(self, tools):
        assert tools.upsert_patient_record(full_name="Room: 4\nAge: 50") == (
            "Error: No 'Patient:' line found in the extraction output."
        )
        assert len(tools.store) == 0

    def test_list_empty(self, tools):
        assert tools.list_patients() == "No patients found in database."

    def test_list_registry(self, tools):
        tools.upsert_patient_record(full_name="John Doe", room="12B", age=67, evolution="Good")
        tools.upsert_patient_record(full_name="Ana Ruiz")

        assert tools.list_patients() == (
            "PATIENT REGISTRY\n"
            + "=" * 50
            + "\n\n1. Ana Ruiz\n"
            "   Room: N/A | Age: N/A | Evolution: Not assessed\n"
            "\n2. John Doe\n"
            "   Room: 12B | Age: 67 | Evolution: Good\n"
            "\nTotal patients: 2"
        )

    def test_store_failure_becomes_message(self):
        class BrokenStore(InMemoryPatientStore):
            def get(self, name):
                raise RuntimeError("disk gone")

        tools = PatientRecordTools(BrokenStore())

        assert tools.get_patient_data("John Doe") == (
            "Unexpected error retrieving patient data: disk gone"
        )


class TestSanitizePatientName:
    """Tests for file-name sanitization."""

    @pytest.mark.parametrize(
        "name, expected",
        [
            ("John Doe", "John_Doe"),
            ("../../etc/passwd", "etcpasswd"),
            ('a<b>c:d"e|f?g*h', "abcdefgh"),
            ("", "Unknown_Patient"),
            ("   ", "Unknown_Patient"),
            ("..", "Unknown_Patient"),
            (None, "Unknown_Patient"),
        ],
    )
    def test_sanitize(self, name, expected):
        assert sanitize_patient_name(name) == expected

    def test_length_capped(self):
        assert len(sanitize_patient_name("a" * 80)) == 50


class TestMarkdownReportExporter:
    """Tests for MarkdownReportExporter."""

    @pytest.fixture
    def exporter(self, tmp_path):
        return MarkdownReportExporter(output_dir=tmp_path / "reports", clock=lambda: FIXED_NOW)

    def test_save_report(self, exporter):
        result = exporter.save_report(REPORT, patient_name="John Doe")

        path = exporter.output_dir / "Report_John_Doe_20240305_143015.md"
        assert result == f"Success: Report saved to {path}"
        content = path.read_text(encoding="utf-8")
        assert content.startswith("# Medical Report\n\n**Patient:** John Doe  \n")
        assert "**Generated:** 2024-03-05 14:30:15" in content
        assert content.endswith(REPORT + "\n")

    def test_existing_file_is_never_overwritten(self, exporter):
        exporter.save_report(REPORT, patient_name="John Doe")
        exporter.save_report(REPORT, patient_name="John Doe")
        exporter.save_report(REPORT, patient_name="John Doe")

        names = sorted(p.name for p in exporter.output_dir.iterdir())
        assert names == [
            "Report_John_Doe_20240305_143015.md",
            "Report_John_Doe_20240305_143015_1.md",
            "Report_John_Doe_20240305_143015_2.md",
        ]

    def test_default_patient_name(self, exporter):
        exporter.save_report(REPORT)

        assert (exporter.output_dir / "Report_Unknown_Patient_20240305_143015.md").exists()

    def test_empty_content(self, exporter):
        assert exporter.save_report("  ", patient_name="John Doe") == (
            "Error: Cannot create report with empty report content."
        )
        assert not exporter.output_dir.exists()

    def test_short_content(self, exporter):
        assert exporter.save_report("Too short.", patient_name="John Doe") == (
            "Error: Report content seems too short (minimum 50 characters expected)."
        )

    def test_write_failure_becomes_message(self, tmp_path):
        blocker = tmp_path / "not_a_dir"
        blocker.write_text("file", encoding="utf-8")
        exporter = MarkdownReportExporter(output_dir=blocker, clock=lambda: FIXED_NOW)

        assert exporter.save_report(REPORT).startswith("Error: ")


class TestBuildPatientTools:
    """Tests for the secretary's tool set."""

    @pytest.fixture
    def tools(self, tmp_path):
        exporter = MarkdownReportExporter(output_dir=tmp_path, clock=lambda: FIXED_NOW)
        return {t.name: t for t in build_patient_tools(InMemoryPatientStore(), exporter)}

    def test_tool_names(self, tools):
        assert list(tools) == ["get_patient_data", "upsert_patient_record", "save_report"]

    def test_schemas(self, tools):
        upsert = tools["upsert_patient_record"].parameters
        assert upsert["required"] == ["full_name"]
        assert upsert["properties"]["age"]["type"] == "integer"
        assert tools["save_report"].parameters["required"] == ["report_content"]

    async def test_tools_share_one_store(self, tools):
        saved = await tools["upsert_patient_record"].invoke(
            {"full_name": "John Doe", "room": "3", "bogus": "dropped"}
        )
        shown = await tools["get_patient_data"].invoke({"name": "John Doe"})

        assert saved.startswith("Success")
        assert "Room: 3" in shown
