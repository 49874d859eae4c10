import logging
import os

import click
from flask import Flask, jsonify, request
from werkzeug.exceptions import HTTPException

from repayments.engine import LoanCollection, compute_summary, summarize_against_baseline
from repayments.exceptions import NonConvergentLoanError
from repayments.formulas import growth_factor, minimum_repayment
from repayments.main import build_loan_from_options
from repayments.plotting import generate_labels, plot_points, plot_points_by_date, resolution_for
from repayments.utils import float_from_str

app = Flask(__name__)
app.config["DEFAULT_TERM"] = int(os.environ.get("REPAYMENTS_DEFAULT_TERM", "360"))
app.config["LOG_LEVEL"] = os.environ.get("REPAYMENTS_LOG_LEVEL", "INFO").upper()

logging.basicConfig(level=app.config["LOG_LEVEL"])
logger = logging.getLogger(__name__)


class RequestError(Exception):
    """Raised for request payloads that cannot be turned into a loan."""


def parse_form_list(value) -> list[str]:
    """Parse a comma or newline separated list of entries from a form field.

    JSON lists are passed through. Returns a list of trimmed strings, skipping
    any empty entries.
    """
    if not value:
        return []
    if isinstance(value, (list, tuple)):
        parts = [str(p).strip() for p in value]
    else:
        parts = [p.strip() for p in str(value).replace("\n", ",").split(",")]
    return [p for p in parts if p]


def _payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        data = request.form.to_dict()
    if not isinstance(data, dict):
        raise RequestError("Request body must be an object")
    return data


def _text(data: dict, key: str):
    value = data.get(key)
    if value is None:
        return None
    value = str(value).strip()
    return value or None


def _loan_from_payload(data: dict):
    principal = _text(data, "principal")
    if principal is None:
        raise RequestError("principal is required")
    try:
        rate = float(data.get("rate", 0.0))
        term = int(data.get("term") or app.config["DEFAULT_TERM"])
    except (TypeError, ValueError) as exc:
        raise RequestError(f"Invalid rate or term: {exc}") from exc
    return build_loan_from_options(
        principal,
        rate,
        term,
        _text(data, "start_date"),
        _text(data, "repayment"),
        _text(data, "extra"),
        _text(data, "fees"),
        tuple(parse_form_list(data.get("lump_sums"))),
        _text(data, "name") or "",
    )


def _series(loan, periods: int, step: int) -> list[dict]:
    return [{"x": x, "y": y} for x, y in plot_points(loan, periods, step)]


def _run_calculation(data: dict) -> dict:
    loan = _loan_from_payload(data)
    periods = loan.periods_to_zero()
    baseline = loan.baseline()
    try:
        periods = max(periods, baseline.periods_to_zero())
        standard = baseline
    except NonConvergentLoanError:
        standard = None
    step = resolution_for(periods)

    scenarios = LoanCollection([loan])
    comparisons = []
    for index, scenario in enumerate(data.get("comparisons") or []):
        if not isinstance(scenario, dict):
            raise RequestError(f"Comparison {index} must be an object")
        frozen = scenarios.add(_loan_from_payload(scenario))
        comparisons.append(compute_summary(frozen))

    return {
        "summary": summarize_against_baseline(loan),
        "labels": generate_labels(loan.start_date, periods, step),
        "series": {
            "standard": _series(standard, periods, step) if standard is not None else [],
            "extra": _series(loan, periods, step),
        },
        "balances": [
            {"date": when.strftime("%Y-%m"), "balance": balance}
            for when, balance in plot_points_by_date(loan, step)
        ],
        "comparisons": comparisons,
        "range": {
            "start_date": scenarios.earliest_start_date().strftime("%Y-%m"),
            "end_date": scenarios.latest_end_date().strftime("%Y-%m"),
        },
    }


def _error(message: str):
    logger.info("Rejected request to %s: %s", request.path, message)
    return jsonify({"error": message}), 400


@app.post("/api/calculate")
def calculate():
    try:
        return jsonify(_run_calculation(_payload()))
    except click.ClickException as exc:
        return _error(exc.format_message())
    except (RequestError, ValueError) as exc:
        return _error(str(exc))


@app.post("/api/repayment")
def repayment():
    try:
        data = _payload()
        principal = _text(data, "principal")
        if principal is None:
            raise RequestError("principal is required")
        fees = _text(data, "fees")
        value = minimum_repayment(
            float_from_str(principal),
            growth_factor(float(data.get("rate", 0.0))),
            float_from_str(fees) if fees else 0.0,
            int(data.get("term") or app.config["DEFAULT_TERM"]),
        )
    except (RequestError, TypeError, ValueError) as exc:
        return _error(str(exc))
    return jsonify({"repayment": value})


@app.errorhandler(Exception)
def unexpected_error(exc):
    if isinstance(exc, HTTPException):
        return exc
    logger.exception("Unhandled exception on %s %s", request.method, request.path)
    return jsonify({"error": "Internal server error"}), 500


if __name__ == "__main__":
    print("Starting repayments calculator web API...")
    app.run(host="0.0.0.0", port=8710, debug=True)
