"""Performance data and reporting tools (analytics)."""

from __future__ import annotations

import json
from statistics import mean, pstdev
from typing import Any

from agentdesk.db.queries import now_iso
from agentdesk.ids import new_id
from agentdesk.tools import args as a
from agentdesk.tools.registry import ToolContext, ToolRegistry, schema


def _series(
    ctx: ToolContext,
    metric: str,
    *,
    start: str = "",
    end: str = "",
    source: str = "",
) -> list[dict[str, Any]]:
    query = (
        "SELECT source, metric, value, period_start, period_end FROM analytics_snapshots "
        "WHERE company_id=? AND metric=?"
    )
    params: list[Any] = [ctx.company_id, metric]
    if source:
        query += " AND source=?"
        params.append(source)
    if start:
        query += " AND period_start>=?"
        params.append(start)
    if end:
        query += " AND period_end<=?"
        params.append(end)
    query += " ORDER BY period_start ASC"
    return a.rows(ctx.conn.execute(query, params).fetchall())


async def get_analytics_data(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    metric = a.text(args, "metric")
    if not metric:
        metrics = ctx.conn.execute(
            "SELECT DISTINCT source, metric FROM analytics_snapshots WHERE company_id=?",
            (ctx.company_id,),
        ).fetchall()
        return {"available": a.rows(metrics)}
    data = _series(
        ctx,
        metric,
        start=a.text(args, "start_date"),
        end=a.text(args, "end_date"),
        source=a.text(args, "source"),
    )
    return {"metric": metric, "points": data}


async def detect_anomalies(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    metric = a.text(args, "metric", "sessions")
    threshold = a.number(args, "z_threshold", 2.0) or 2.0
    points = _series(ctx, metric)
    values = [float(point["value"]) for point in points]
    if len(values) < 3:
        return {"metric": metric, "anomalies": [], "note": "Not enough data points"}
    avg = mean(values)
    spread = pstdev(values)
    anomalies = []
    if spread > 0:
        for point in points:
            z = (float(point["value"]) - avg) / spread
            if abs(z) >= threshold:
                anomalies.append({**point, "z_score": round(z, 2)})
    return {
        "metric": metric,
        "mean": round(avg, 2),
        "stdev": round(spread, 2),
        "anomalies": anomalies,
    }


async def calculate_roi(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    spend = a.number(args, "spend")
    revenue = a.number(args, "revenue")
    if spend is None:
        spend = sum(float(p["value"]) for p in _series(ctx, "ad_spend"))
    if revenue is None:
        revenue = sum(float(p["value"]) for p in _series(ctx, "revenue"))
    if not spend:
        return {"error": "Spend is zero or unknown; ROI cannot be computed"}
    return {
        "spend": round(spend, 2),
        "revenue": round(revenue, 2),
        "roi_pct": round((revenue - spend) / spend * 100, 2),
    }


async def generate_report(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    start = a.text(args, "period_start")
    end = a.text(args, "period_end")
    metrics = a.string_list(args, "metrics") or ["sessions", "conversions", "ad_spend"]
    data = {
        metric: sum(float(p["value"]) for p in _series(ctx, metric, start=start, end=end))
        for metric in metrics
    }
    report_id = new_id("rpt")
    title = a.text(args, "title", "Performance report")
    ctx.conn.execute(
        (
            "INSERT INTO reports(id, company_id, report_type, title, period_start, period_end, "
            "data_json, status, created_by, created_at) VALUES(?,?,?,?,?,?,?,'draft',?,?)"
        ),
        (
            report_id,
            ctx.company_id,
            a.text(args, "report_type", "monthly"),
            title,
            start or None,
            end or None,
            json.dumps(data),
            ctx.agent_name,
            now_iso(),
        ),
    )
    return {"status": "report_drafted", "report_id": report_id, "title": title, "totals": data}


async def get_conversion_data(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    conversions = _series(ctx, "conversions", start=a.text(args, "start_date"))
    sessions = _series(ctx, "sessions", start=a.text(args, "start_date"))
    total_conv = sum(float(p["value"]) for p in conversions)
    total_sessions = sum(float(p["value"]) for p in sessions)
    rate = round(total_conv / total_sessions * 100, 2) if total_sessions else None
    return {"conversions": total_conv, "sessions": total_sessions, "conversion_rate_pct": rate}


async def forecast_metrics(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    metric = a.text(args, "metric", "sessions")
    periods = a.integer(args, "periods_ahead", 3, low=1, high=12)
    values = [float(p["value"]) for p in _series(ctx, metric)]
    if len(values) < 2:
        return {"metric": metric, "forecast": [], "note": "Need at least two data points"}
    # Least-squares line over the observed index.
    n = len(values)
    x_bar = (n - 1) / 2
    y_bar = mean(values)
    denom = sum((i - x_bar) ** 2 for i in range(n))
    slope = sum((i - x_bar) * (v - y_bar) for i, v in enumerate(values)) / denom
    forecast = [round(y_bar + slope * (n - 1 + step - x_bar), 2) for step in range(1, periods + 1)]
    return {"metric": metric, "slope_per_period": round(slope, 2), "forecast": forecast}


async def compare_periods(args: dict[str, Any], ctx: ToolContext) -> dict[str, Any]:
    metric = a.text(args, "metric", "sessions")
    first = sum(
        float(p["value"])
        for p in _series(ctx, metric, start=a.text(args, "a_start"), end=a.text(args, "a_end"))
    )
    second = sum(
        float(p["value"])
        for p in _series(ctx, metric, start=a.text(args, "b_start"), end=a.text(args, "b_end"))
    )
    change = round((second - first) / first * 100, 2) if first else None
    return {"metric": metric, "period_a": first, "period_b": second, "change_pct": change}


def register(registry: ToolRegistry) -> None:
    period = {
        "start_date": {"type": "string", "description": "ISO date"},
        "end_date": {"type": "string", "description": "ISO date"},
    }
    registry.register(
        "get_analytics_data",
        "Get data points for a metric, or list available metrics when none is given.",
        get_analytics_data,
        schema({"metric": {"type": "string"}, "source": {"type": "string"}, **period}),
    )
    registry.register(
        "detect_anomalies",
        "Flag data points that deviate strongly from a metric's mean.",
        detect_anomalies,
        schema({"metric": {"type": "string"}, "z_threshold": {"type": "number"}}),
    )
    registry.register(
        "calculate_roi",
        "Compute ROI from spend and revenue (given or taken from stored metrics).",
        calculate_roi,
        schema({"spend": {"type": "number"}, "revenue": {"type": "number"}}),
    )
    registry.register(
        "generate_report",
        "Draft a performance report with metric totals for a period.",
        generate_report,
        schema(
            {
                "title": {"type": "string"},
                "report_type": {"type": "string", "enum": ["weekly", "monthly", "quarterly"]},
                "period_start": {"type": "string"},
                "period_end": {"type": "string"},
                "metrics": {"type": "array", "items": {"type": "string"}},
            }
        ),
    )
    registry.register(
        "get_conversion_data",
        "Total conversions, sessions and conversion rate.",
        get_conversion_data,
        schema({"start_date": {"type": "string"}}),
    )
    registry.register(
        "forecast_metrics",
        "Project a metric forward with a linear trend.",
        forecast_metrics,
        schema({"metric": {"type": "string"}, "periods_ahead": {"type": "number"}}),
    )
    registry.register(
        "compare_periods",
        "Compare a metric's total between two date ranges.",
        compare_periods,
        schema(
            {
                "metric": {"type": "string"},
                "a_start": {"type": "string"},
                "a_end": {"type": "string"},
                "b_start": {"type": "string"},
                "b_end": {"type": "string"},
            }
        ),
    )
