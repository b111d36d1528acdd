from flask import Blueprint, current_app, jsonify, request

from posfin.services import reporting_service
from posfin.services.invoice_service import build_invoice_share
from posfin.time_utils import coerce_datetime, local_now
from posfin.validation import ValidationError, parse_report_params


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


def _json_body():
    payload = request.get_json(silent=True)
    return payload if isinstance(payload, dict) else None


def _load_context(payload: dict):
    engine = reporting_service.build_engine(payload, current_app.config)
    params = parse_report_params(
        payload,
        default_time_range=current_app.config["DEFAULT_TIME_RANGE"],
        default_sale_mode=current_app.config["DEFAULT_SALE_MODE"],
    )
    return engine, reporting_service.context_for(engine, params)


@reports_bp.post("/financial")
def financial_report():
    payload = _json_body()
    if payload is None:
        return jsonify({"error": "JSON body is required"}), 400

    try:
        engine, ctx = _load_context(payload)
        return jsonify(reporting_service.financial_summary(engine, ctx)), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build financial report")
        return jsonify({"error": "Failed to build financial report"}), 500


@reports_bp.post("/series")
def series_report():
    payload = _json_body()
    if payload is None:
        return jsonify({"error": "JSON body is required"}), 400

    try:
        _, ctx = _load_context(payload)
        return jsonify(reporting_service.time_series(ctx)), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build series report")
        return jsonify({"error": "Failed to build series report"}), 500


@reports_bp.post("/series/hourly")
def hourly_series_report():
    payload = _json_body()
    if payload is None:
        return jsonify({"error": "JSON body is required"}), 400

    try:
        _, ctx = _load_context(payload)
        return jsonify(reporting_service.hourly_series(ctx, payload.get("day"))), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build hourly series")
        return jsonify({"error": "Failed to build hourly series"}), 500


@reports_bp.post("/payment-methods")
def payment_methods_report():
    payload = _json_body()
    if payload is None:
        return jsonify({"error": "JSON body is required"}), 400

    try:
        _, ctx = _load_context(payload)
        return jsonify(reporting_service.payment_methods(ctx)), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build payment method report")
        return jsonify({"error": "Failed to build payment method report"}), 500


@reports_bp.post("/export")
def export_report():
    payload = _json_body()
    if payload is None:
        return jsonify({"error": "JSON body is required"}), 400

    try:
        engine, ctx = _load_context(payload)
        summary = reporting_service.financial_summary(engine, ctx)
        return jsonify({
            "range": summary["range"],
            "sale_mode": summary["sale_mode"],
            "rows": reporting_service.export_rows(summary),
        }), 200
    except (ValidationError, reporting_service.ReportError) as exc:
        return jsonify({"error": str(exc)}), 400
    except Exception:
        current_app.logger.exception("Failed to build export rows")
        return jsonify({"error": "Failed to build export rows"}), 500


@reports_bp.post("/invoice")
def invoice_text():
    payload = _json_body()
    if payload is None:
        return jsonify({"error": "JSON body is required"}), 400

    config = current_app.config
    transaction = payload.get("transaction")
    if not isinstance(transaction, dict):
        return jsonify({"error": "transaction is required"}), 400

    shop = payload.get("shop") if isinstance(payload.get("shop"), dict) else {
        "name": config["SHOP_NAME"],
        "address": config["SHOP_ADDRESS"],
        "phone": config["SHOP_PHONE"],
    }
    now = coerce_datetime(payload.get("now"), config["REPORT_TIMEZONE"]) or local_now(config["REPORT_TIMEZONE"])

    try:
        share = build_invoice_share(
            transaction,
            shop=shop,
            now=now,
            currency_symbol=config["CURRENCY_SYMBOL"],
            footer=config["INVOICE_FOOTER"],
            tz_name=config["REPORT_TIMEZONE"],
        )
    except Exception:
        current_app.logger.exception("Failed to format invoice")
        return jsonify({"error": "Failed to format invoice"}), 500

    if not share.ok:
        return jsonify(share.to_dict()), 422
    return jsonify(share.to_dict()), 200
