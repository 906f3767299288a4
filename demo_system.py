"""
Complete system demo exercising the full evaluation pipeline.

This script runs:
1. Configuration loading and validation
2. Rule registry export / import / rejection of malformed rules
3. Gap analysis, forecast and visit plan for sample patients
4. Population summary across all sample patients

Run with: uv run python demo_system.py
"""

import json
from datetime import date

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from adapters.acip.schedule import DEFAULT_RULE_SET
from vaxengine.config import get_config, print_config_summary, validate_config
from vaxengine.domain.durations import add_months
from vaxengine.domain.models import (
    AdministeredDose,
    Condition,
    PatientProfile,
    PatientRecord,
    SeriesStatusKind,
    Sex,
)
from vaxengine.services import ImmunizationService, RuleRegistry, configure_logging
from vaxengine.services.immunization_service import age_in_months

console = Console()

STATUS_STYLES = {
    SeriesStatusKind.COMPLETE: "green",
    SeriesStatusKind.UP_TO_DATE: "green",
    SeriesStatusKind.DUE_NOW: "yellow",
    SeriesStatusKind.OVERDUE: "bold red",
    SeriesStatusKind.FUTURE: "cyan",
    SeriesStatusKind.CONTRAINDICATED: "magenta",
}


def standard_history(
    prefix: str, dob: date, age_years: float, exclude: frozenset[str] = frozenset()
) -> list[AdministeredDose]:
    """Routine childhood doses for a healthy child up to `age_years`."""
    doses: list[AdministeredDose] = []

    def add(series_code: str, when: date) -> None:
        if series_code not in exclude:
            doses.append(
                AdministeredDose(
                    series_code=series_code,
                    date_administered=when,
                    dose_id=f"{prefix}-{len(doses) + 1}",
                )
            )

    age_months = age_years * 12
    add("HepB", dob)

    if age_months >= 2:
        for code in ("HepB", "Rotavirus", "DTaP", "Hib", "PCV", "IPV"):
            add(code, add_months(dob, 2))
    if age_months >= 4:
        for code in ("Rotavirus", "DTaP", "Hib", "PCV", "IPV"):
            add(code, add_months(dob, 4))
    if age_months >= 6:
        for code in ("HepB", "Rotavirus", "DTaP", "Hib", "PCV", "IPV", "Influenza"):
            add(code, add_months(dob, 6))
        add("Influenza", add_months(dob, 7))
    if age_months >= 15:
        for code in ("Hib", "PCV", "MMR", "Varicella", "HepA"):
            add(code, add_months(dob, 12))
        add("DTaP", add_months(dob, 15))
    if age_months >= 18:
        add("HepA", add_months(dob, 18))
    if age_years >= 5:
        for code in ("DTaP", "IPV", "MMR", "Varicella"):
            add(code, add_months(dob, 48))
    if age_years >= 11:
        for code in ("Tdap", "MenACWY", "HPV"):
            add(code, add_months(dob, 132))
        add("HPV", add_months(dob, 138))
    if age_years >= 16:
        add("MenACWY", add_months(dob, 192))

    return doses


def sample_patients(today: date) -> list[PatientRecord]:
    """Representative patients across the age range, relative to `today`."""
    baby_dob = add_months(today, -14)
    child_dob = add_months(today, -60)
    teen_dob = add_months(today, -157)
    pregnant_dob = add_months(today, -342)
    senior_dob = add_months(today, -796)

    return [
        PatientRecord(
            patient_id="84920-X",
            profile=PatientProfile(
                date_of_birth=baby_dob,
                sex=Sex.FEMALE,
                conditions=frozenset({Condition.IMMUNOCOMPROMISED}),
            ),
            # Completed 6-month shots, missed the 12-month visit
            history=tuple(standard_history("baby", baby_dob, 0.6)),
        ),
        PatientRecord(
            patient_id="99210-Z",
            profile=PatientProfile(date_of_birth=child_dob, sex=Sex.MALE),
            # Toddler shots only; kindergarten boosters outstanding
            history=tuple(standard_history("child", child_dob, 2)),
        ),
        PatientRecord(
            patient_id="75921-T",
            profile=PatientProfile(date_of_birth=teen_dob, sex=Sex.FEMALE),
            history=(
                *standard_history("teen", teen_dob, 10),
                AdministeredDose(
                    series_code="HPV",
                    date_administered=add_months(teen_dob, 132),
                    dose_id="t-3",
                ),
            ),
        ),
        PatientRecord(
            patient_id="33910-P",
            profile=PatientProfile(
                date_of_birth=pregnant_dob,
                sex=Sex.FEMALE,
                conditions=frozenset({Condition.PREGNANCY}),
                medications=frozenset({"Prenatal Vitamins"}),
            ),
            history=(
                *standard_history("mom", pregnant_dob, 20, exclude=frozenset({"MMR"})),
                AdministeredDose(
                    series_code="MMR",
                    date_administered=add_months(pregnant_dob, 12),
                    dose_id="p-1",
                ),
            ),
        ),
        PatientRecord(
            patient_id="19432-B",
            profile=PatientProfile(
                date_of_birth=senior_dob,
                sex=Sex.MALE,
                conditions=frozenset({Condition.DIABETES_TYPE_2, Condition.COPD}),
                medications=frozenset({"Metformin", "Albuterol"}),
            ),
            history=(
                *standard_history("senior", senior_dob, 18),
                AdministeredDose(
                    series_code="Zoster", date_administered=add_months(today, -2), dose_id="b-1"
                ),
                AdministeredDose(
                    series_code="Influenza",
                    date_administered=add_months(today, -14),
                    dose_id="b-2",
                ),
                AdministeredDose(
                    series_code="Td/Tdap",
                    date_administered=add_months(senior_dob, 648),
                    dose_id="b-3",
                ),
            ),
        ),
    ]


def demo_configuration() -> bool:
    """Load and validate configuration."""

    console.print(Panel("🔧 Configuration", style="blue"))

    try:
        validate_config()
        console.print("✅ Configuration loaded successfully", style="green")
        print_config_summary()
        return True

    except Exception as e:
        console.print(f"❌ Configuration check failed: {e}", style="red")
        return False


def demo_rule_registry(registry: RuleRegistry) -> bool:
    """Round-trip the active rules and show a malformed import being rejected."""

    console.print(Panel("📋 Rule Registry", style="blue"))

    exported = registry.export_json()
    reimported = registry.import_json(exported, source="demo-roundtrip")
    if reimported != DEFAULT_RULE_SET:
        console.print("❌ Exported rules did not round-trip", style="red")
        return False
    console.print(f"✅ Round-tripped {len(reimported)} series through JSON", style="green")

    broken = json.dumps({"HepB": [{"doseNumber": 1}]})
    result = registry.try_import_json(broken, source="demo-broken")
    if result.is_ok():
        console.print("❌ Malformed rules were accepted", style="red")
        return False
    console.print(f"✅ Rejected malformed rules: {result.unwrap_err()}", style="green")
    console.print(f"Active source is still: {registry.source}", style="yellow")
    return True


def demo_patients(service: ImmunizationService, patients: list[PatientRecord], today: date) -> bool:
    """Gap analysis, forecast and visit plan for each sample patient."""

    console.print(Panel("💉 Patient Evaluations", style="blue"))

    for record in patients:
        response = service.analyze_patient(record.profile, record.history, today)
        age = age_in_months(record.profile.date_of_birth, today)
        console.print(f"\n[bold]{record.patient_id}[/bold] (age {age / 12:.1f}y)")

        table = Table(title="Series Status")
        table.add_column("Series", style="cyan")
        table.add_column("Status")
        table.add_column("Valid", justify="right")
        table.add_column("Next Due", style="white")
        table.add_column("Reason", style="dim")

        for status in response.statuses:
            table.add_row(
                status.series_code,
                f"[{STATUS_STYLES[status.status]}]{status.status.value}[/]",
                str(status.valid_dose_count),
                status.next_due_date.isoformat() if status.next_due_date else "-",
                status.reason,
            )
        console.print(table)

        visits = Table(title=f"Visit Plan ({len(response.forecast)} forecast doses)")
        visits.add_column("Visit Date", style="cyan")
        visits.add_column("Doses", style="white")
        for visit in response.visits[:8]:
            visits.add_row(
                visit.visit_date.isoformat(),
                ", ".join(f"{d.series_code} #{d.dose_number}" for d in visit.doses),
            )
        console.print(visits)

    return True


def demo_population(
    service: ImmunizationService, patients: list[PatientRecord], today: date
) -> bool:
    """Population compliance summary."""

    console.print(Panel("📊 Population Summary", style="blue"))

    summary = service.summarize_population(patients, today)

    table = Table(title="Compliance by Patient")
    table.add_column("Patient", style="cyan")
    table.add_column("Overdue", style="red", justify="right")
    table.add_column("Due Now", style="yellow", justify="right")
    table.add_column("Complete", style="green", justify="right")
    table.add_column("Total", justify="right")

    for patient_id, stats in summary.items():
        table.add_row(
            patient_id,
            str(stats.overdue),
            str(stats.due_now),
            str(stats.complete),
            str(stats.total),
        )
    console.print(table)
    return True


def run_demo() -> None:
    """Run every demo stage."""

    console.print(Panel("🧪 Immunization Schedule Engine - System Demo", style="bold blue"))

    config = get_config()
    configure_logging(config.logging)

    registry = RuleRegistry.from_config(config.rules, DEFAULT_RULE_SET)
    service = ImmunizationService(registry, config.engine)
    today = date.today()
    patients = sample_patients(today)

    stages = [
        ("Configuration", demo_configuration),
        ("Rule Registry", lambda: demo_rule_registry(registry)),
        ("Patient Evaluations", lambda: demo_patients(service, patients, today)),
        ("Population Summary", lambda: demo_population(service, patients, today)),
    ]

    results = []
    for stage_name, stage in stages:
        console.print(f"\n{'=' * 60}")
        try:
            results.append((stage_name, stage()))
        except Exception as e:
            console.print(f"❌ {stage_name} failed with exception: {e}", style="red")
            results.append((stage_name, False))

    console.print(f"\n{'=' * 60}")
    console.print(Panel("📋 Demo Results Summary", style="bold"))

    summary_table = Table()
    summary_table.add_column("Stage", style="cyan")
    summary_table.add_column("Result", style="white")

    passed = 0
    for stage_name, ok in results:
        summary_table.add_row(stage_name, "✅ PASSED" if ok else "❌ FAILED")
        passed += int(ok)

    console.print(summary_table)
    console.print(f"\n🎯 Results: {passed}/{len(results)} stages passed")


if __name__ == "__main__":
    try:
        run_demo()
    except KeyboardInterrupt:
        console.print("\n👋 Demo stopped by user", style="yellow")
