import csv
import re
from io import StringIO
from typing import Sequence

from periods import months_of_year
from records import EntityRevenue


def sanitize_csv_value(value: str) -> str:
    """
    Sanitize CSV values to prevent formula injection by prefixing dangerous patterns with tab.
    """
    if not value or value.strip() == "":
        return ""

    value = value.strip()

    formula_triggers = ("=", "+", "-", "@", "\t", "\r")

    if value.startswith(formula_triggers):
        return "\t" + value

    dangerous_patterns = [
        r"^cmd\s*",
        r"^powershell\s*",
        r"^bash\s*",
        r"^sh\s*",
        r"^http[s]?://",
    ]

    for pattern in dangerous_patterns:
        if re.match(pattern, value, re.IGNORECASE):
            return "\t" + value

    return value


def export_revenue(results: Sequence[EntityRevenue], year: int) -> str:
    months = months_of_year(year)
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(
        ["Entity", "Name", "Company", "Origin", "Type"]
        + [m.key for m in months]
        + ["Total revenue", "Total hours", "Total budget"]
    )
    for result in results:
        series = result.monthly
        writer.writerow(
            [
                result.entity_id,
                sanitize_csv_value(result.name),
                sanitize_csv_value(result.company_name or ""),
                result.origin.label,
                result.display_type,
            ]
            + [f"{series.months[m.month].revenue:.2f}" for m in months]
            + [
                f"{series.total_revenue:.2f}",
                f"{series.total_hours:.2f}",
                "" if result.total_budget is None else f"{result.total_budget:.2f}",
            ]
        )
    return output.getvalue()
