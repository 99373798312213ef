"""Shape sheet ranges into chart datasets.

Only the data layout is produced here (labels plus datasets in the shape
most JS chart libraries accept); drawing is left to the client.
"""
from __future__ import annotations

from typing import Any, Dict, List

from models.schemas import ChartConfig, ChartData, ChartType, Sheet

from .coercion import to_number_or_zero
from .extraction import extract_range
from .filtering import cell_value


def hex_to_rgba(hex_color: str, alpha: float) -> str:
    """"#3366FF" -> "rgba(51, 102, 255, 0.3)". Unparseable channels read as 0."""
    digits = hex_color.lstrip("#")
    channels = []
    for start in (0, 2, 4):
        try:
            channels.append(int(digits[start:start + 2], 16))
        except ValueError:
            channels.append(0)
    r, g, b = channels
    return f"rgba({r}, {g}, {b}, {alpha})"


def _color(config: ChartConfig, index: int) -> str:
    if not config.colors:
        return ""
    return config.colors[index % len(config.colors)]


def _labels(data: List[List[Any]]) -> List[Any]:
    return [cell_value(row, 0) or "" for row in data]


def _series(data: List[List[Any]], col: int) -> List[float]:
    return [to_number_or_zero(cell_value(row, col)) for row in data]


def format_chart_data(data: List[List[Any]], config: ChartConfig) -> ChartData:
    if config.type == ChartType.PIE:
        return ChartData(
            labels=_labels(data),
            datasets=[{"data": _series(data, 1), "backgroundColor": list(config.colors)}],
        )

    if config.type == ChartType.SCATTER:
        x_col = config.x_axis_column or 0
        datasets = []
        for index, col in enumerate(config.y_axis_columns):
            points = [
                {
                    "x": to_number_or_zero(cell_value(row, x_col)),
                    "y": to_number_or_zero(cell_value(row, col)),
                }
                for row in data
            ]
            datasets.append({
                "label": f"Series {index + 1}",
                "data": points,
                "backgroundColor": _color(config, index),
            })
        return ChartData(datasets=datasets)

    datasets: List[Dict[str, Any]] = []
    for index, col in enumerate(config.y_axis_columns):
        color = _color(config, index)
        dataset: Dict[str, Any] = {"label": f"Series {index + 1}", "data": _series(data, col)}

        if config.type == ChartType.BAR:
            dataset["backgroundColor"] = color
        elif config.type == ChartType.LINE:
            dataset.update(borderColor=color, backgroundColor="transparent", tension=0.1)
        elif config.type == ChartType.AREA:
            dataset.update(borderColor=color, backgroundColor=hex_to_rgba(color, 0.3), fill=True)

        datasets.append(dataset)

    return ChartData(labels=_labels(data), datasets=datasets)


def chart_data(sheet: Sheet, config: ChartConfig) -> ChartData:
    return format_chart_data(extract_range(sheet, config.data_range), config)
