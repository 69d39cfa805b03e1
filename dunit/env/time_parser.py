import re
from datetime import timedelta


class TimeParser:
    def __init__(self, time_amount: str | int | float) -> None:
        self._units = {
            "ms": "milliseconds",
            "s": "seconds",
            "m": "minutes",
            "h": "hours",
            "d": "days",
            "w": "weeks",
        }

        self.time = self.parse(time_amount)

    def parse(self, time_amount: str | int | float) -> float:
        if isinstance(time_amount, (int, float)):
            return float(time_amount)

        matches = list(
            re.finditer(
                r"(?P<val>\d+(\.\d+)?)(?P<unit>ms|[smhdw]?)",
                time_amount.strip(),
                flags=re.I,
            )
        )

        if len(matches) < 1:
            raise ValueError(f"Err. - could not parse time amount {time_amount}")

        delta = timedelta()
        for match in matches:
            delta += timedelta(
                **{
                    self._units.get(
                        match.group("unit").lower(),
                        "seconds",
                    ): float(match.group("val"))
                }
            )

        return delta.total_seconds()
