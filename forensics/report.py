"""
Presentation artifacts for forensic analyses: ASCII report, notebook and
timeline data. Rendering never changes the analysis it is given.
"""

import json
from typing import Any, Dict, List, Optional, Sequence

from forensics.detectors import DetectorTable
from forensics.interfaces import (
    EVIDENCE_GRADE_DESCRIPTIONS,
    SEVERITY_ORDER,
    Anomaly,
    AnomalySummary,
    EvidenceContext,
    Severity,
    TranscriptStatistics,
    Verdict,
)
from forensics.serializers import (
    serialize_anomaly,
    serialize_statistics,
    serialize_verdict,
)

DSMMD_VERSION = "1.0.0"
RULE = "═" * 63
DIVIDER = "─" * 63


def top_anomalies(anomalies: Sequence[Anomaly], limit: int = 5) -> List[Anomaly]:
    """Most severe anomalies first; ties keep detection order."""
    return sorted(anomalies, key=lambda a: -SEVERITY_ORDER[a.severity])[:limit]


def _pct(value: float) -> str:
    return f"{value * 100:.1f}%"


def render_ascii_report(
    stats: TranscriptStatistics,
    summary: AnomalySummary,
    verdict: Verdict,
    anomalies: Sequence[Anomaly],
    table: Optional[DetectorTable] = None,
    limit: int = 5,
) -> str:
    """Fixed-width text report of one analysis."""
    lines = [
        RULE,
        f"NEURAL FORENSICS REPORT - DSMMD v{DSMMD_VERSION}".center(63).rstrip(),
        RULE,
        "",
        "TRANSCRIPT STATISTICS",
        DIVIDER,
        f"Total Turns:        {stats.total_turns}",
        f"  - User:           {stats.user_turns}",
        f"  - Assistant:      {stats.assistant_turns}",
        f"  - System:         {stats.system_turns}",
        f"Avg Turn Length:    {stats.avg_turn_length} characters",
        f"Estimated Tokens:   {stats.total_tokens_estimate}",
        "",
        "DSMMD ANOMALY SUMMARY",
        DIVIDER,
        f"Total Anomalies:    {summary.total_anomalies}",
        "",
        "By Code:",
    ]

    for code, count in summary.by_code.items():
        rule = table.get(code) if table else None
        label = f"{code} ({rule.name})" if rule else code
        lines.append(f"  {label + ':':<38}{count}")

    lines.append("")
    lines.append("By Severity:")
    for severity in Severity:
        label = severity.value.capitalize() + ":"
        lines.append(f"  {label:<11}{summary.by_severity.get(severity.value, 0)}")
    lines.append("")

    if summary.critical_turns:
        turns = ", ".join(str(t) for t in summary.critical_turns)
        lines.append(f"Critical Turns:     [{turns}]")
        lines.append("")

    grade = verdict.evidence_grade
    lines.extend(
        [
            "FORENSIC VERDICT",
            DIVIDER,
            f"Assessment:         {verdict.overall_assessment.value.upper()}",
            f"Confidence:         {_pct(verdict.confidence)}",
        ]
    )
    if verdict.primary_diagnosis:
        lines.append(f"Primary Diagnosis:  {verdict.primary_diagnosis}")
    if verdict.split_brain_likelihood is not None:
        lines.append(f"Split-Brain Prob:   {_pct(verdict.split_brain_likelihood)}")
    lines.append(
        f"Evidence Grade:     {grade.value} ({EVIDENCE_GRADE_DESCRIPTIONS[grade]})"
    )
    lines.extend(["", "Recommendation:", f"  {verdict.recommendation}", ""])
    lines.append("Next Steps:")
    lines.extend(f"  * {step}" for step in verdict.next_steps)
    lines.append("")

    if anomalies:
        lines.extend(["TOP ANOMALIES", DIVIDER])
        for idx, anomaly in enumerate(top_anomalies(anomalies, limit), start=1):
            lines.append(
                f"{idx}. Turn {anomaly.turn_index} | {anomaly.code} | "
                f"{anomaly.severity.value.upper()}"
            )
            lines.append(f'   "{anomaly.quoted_span}"')
            lines.append(f"   Confidence: {_pct(anomaly.confidence)}")
            lines.append("")

    lines.extend([RULE, "End of Forensic Report".center(63).rstrip(), RULE])
    return "\n".join(lines)


def build_timeline(anomalies: Sequence[Anomaly]) -> Dict[str, List[Any]]:
    """Parallel lists suitable for a scatter plot of anomalies over turns."""
    return {
        "turns": [a.turn_index for a in anomalies],
        "codes": [a.code for a in anomalies],
        "severities": [a.severity.value for a in anomalies],
        "descriptions": [a.description for a in anomalies],
    }


def _markdown_cell(source: str) -> Dict[str, Any]:
    return {"cell_type": "markdown", "metadata": {}, "source": source}


def _code_cell(source: str) -> Dict[str, Any]:
    return {
        "cell_type": "code",
        "execution_count": None,
        "metadata": {},
        "outputs": [],
        "source": source,
    }


def _json_literal(data: Any) -> str:
    return f"json.loads({json.dumps(data, indent=2)!r})"


def build_notebook(
    evidence: EvidenceContext,
    stats: TranscriptStatistics,
    anomalies: Sequence[Anomaly],
    verdict: Verdict,
    generated_at: str,
) -> Dict[str, Any]:
    """nbformat 4 notebook that reproduces the analysis interactively."""
    specimen = evidence.specimen_name or "Unknown"
    model = evidence.model_family or "Unknown"
    grade = verdict.evidence_grade.value
    anomaly_records = [serialize_anomaly(a) for a in anomalies]

    verdict_lines = [
        "## Forensic Verdict",
        "",
        f"**Assessment:** {verdict.overall_assessment.value.upper()}",
        f"**Confidence:** {_pct(verdict.confidence)}",
    ]
    if verdict.primary_diagnosis:
        verdict_lines.append(f"**Primary Diagnosis:** {verdict.primary_diagnosis}")
    if verdict.split_brain_likelihood:
        verdict_lines.append(
            f"**Split-Brain Likelihood:** {_pct(verdict.split_brain_likelihood)}"
        )
    verdict_lines.extend(["", "### Recommendation", "", verdict.recommendation])
    verdict_lines.extend(["", "### Next Steps", ""])
    verdict_lines.extend(f"- {step}" for step in verdict.next_steps)

    cells = [
        _markdown_cell(
            "# Neural Forensics Report: DSMMD Analysis\n\n"
            f"**Specimen:** {specimen}\n"
            f"**Model:** {model}\n"
            f"**Evidence Grade:** {grade}\n"
            f"**Analysis Date:** {generated_at[:10]}\n\n---"
        ),
        _code_cell(
            "!pip install -q plotly pandas\n\n"
            "import json\n"
            "import pandas as pd\n"
            "import plotly.express as px\n\n"
            'print("Environment ready for forensic analysis")'
        ),
        _markdown_cell("## Transcript Statistics"),
        _code_cell(
            f"stats = {_json_literal(serialize_statistics(stats))}\n\n"
            "print(f\"Total Turns: {stats['total_turns']}\")\n"
            "print(f\"  User: {stats['user_turns']}\")\n"
            "print(f\"  Assistant: {stats['assistant_turns']}\")\n"
            "print(f\"Estimated Tokens: {stats['total_tokens_estimate']:,}\")"
        ),
        _markdown_cell(
            "## DSMMD Anomaly Detection\n\n"
            f"Detected {len(anomalies)} anomalies using the DSMMD taxonomy."
        ),
        _code_cell(
            f"anomalies = {_json_literal(anomaly_records)}\n\n"
            "df = pd.DataFrame(anomalies)\n"
            "if not df.empty:\n"
            "    print(df['code'].value_counts())\n"
            "    print(df['severity'].value_counts())"
        ),
        _markdown_cell("## Anomaly Timeline"),
        _code_cell(
            "if not df.empty:\n"
            "    fig = px.scatter(\n"
            "        df,\n"
            "        x='turn_index',\n"
            "        y='code',\n"
            "        color='severity',\n"
            "        size='confidence',\n"
            "        hover_data=['description', 'quoted_span'],\n"
            "        title='DSMMD Anomaly Timeline',\n"
            "        color_discrete_map={\n"
            "            'critical': '#DC2626',\n"
            "            'high': '#EA580C',\n"
            "            'medium': '#F59E0B',\n"
            "            'low': '#84CC16',\n"
            "        },\n"
            "    )\n"
            "    fig.update_layout(height=500)\n"
            "    fig.show()"
        ),
        _markdown_cell("\n".join(verdict_lines)),
        _code_cell(
            f"verdict = {_json_literal(serialize_verdict(verdict))}\n\n"
            "df.to_csv('forensic_anomalies.csv', index=False)\n"
            "with open('forensic_report.json', 'w') as f:\n"
            "    json.dump(\n"
            "        {'statistics': stats, 'anomalies': anomalies, 'verdict': verdict},\n"
            "        f,\n"
            "        indent=2,\n"
            "    )\n"
            'print("Exported forensic_anomalies.csv and forensic_report.json")'
        ),
    ]

    return {
        "cells": cells,
        "metadata": {
            "kernelspec": {
                "display_name": "Python 3",
                "language": "python",
                "name": "python3",
            },
            "language_info": {"name": "python"},
            "forensics": {
                "title": f"Neural Forensics: {evidence.specimen_name or 'Transcript Analysis'}",
                "subtitle": f"DSMMD v{DSMMD_VERSION} - {grade} Evidence",
                "analysis_mode": "forensic_transcript",
                "dsmmd_version": DSMMD_VERSION,
                "generated_at": generated_at,
            },
        },
        "nbformat": 4,
        "nbformat_minor": 4,
    }
