from flask_cors import CORS
from flask import Flask, request, jsonify
import logging
import os

from db import init_db
from portfolio_pipeline import DEFAULT_LIMIT
from portfolio_repository import (
    QueryExecutionError,
    build_portfolio_filter,
    get_portfolio_by_id,
    list_portfolios,
    list_user_portfolios,
)
from validators import parse_int_param, validate_sort_param

app = Flask(__name__)

# CORS origins may be set via the environment variable `CORS_ORIGINS`
# as a comma-separated list.
cors_origins = os.environ.get(
    "CORS_ORIGINS",
    "http://localhost:5173,http://localhost:3000"
).split(",")

CORS(app, resources={
    r"/api/*": {
        "origins": cors_origins,
        "methods": ["GET", "OPTIONS"],
        "allow_headers": ["Content-Type"]
    }
})

MAX_PAGE_LIMIT = int(os.environ.get("PORTFOLIO_MAX_PAGE_LIMIT", 50))

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def _listing_params():
    """
    Read sort / page / limit from the query string.
    Raises ValueError on invalid input.
    """
    sort = validate_sort_param(request.args.get("sort"))
    page = parse_int_param(request.args.get("page"), "page", default=1)
    limit = parse_int_param(
        request.args.get("limit"), "limit",
        default=DEFAULT_LIMIT, max_value=MAX_PAGE_LIMIT
    )
    return sort, page, limit


# ------------------------------
# Root & Documentation
# ------------------------------
@app.route("/")
def root():
    """Welcome and API documentation"""
    return jsonify({
        "service": "Portfolio Listing API",
        "version": "1.0",
        "status": "running",
        "endpoints": {
            "health": "/ping",
            "portfolios": {
                "list": "GET /api/portfolios?sort=latest|popular&page=&limit=&jobGroup=&userID=&tag=&q=",
                "get": "GET /api/portfolios/<portfolio_id>",
                "by_user": "GET /api/users/<user_id>/portfolios"
            }
        }
    }), 200

# ------------------------------
# Health
# ------------------------------
@app.route("/ping")
def ping():
    return ("ok", 200)

# ------------------------------
# Portfolios
# ------------------------------
@app.route("/api/portfolios", methods=["GET"])
def portfolios():
    try:
        sort, page, limit = _listing_params()
        match_criteria = build_portfolio_filter(
            job_group=request.args.get("jobGroup"),
            user_id=request.args.get("userID"),
            tag=request.args.get("tag"),
            keyword=request.args.get("q"),
        )
        result = list_portfolios(match_criteria, sort=sort, page=page, limit=limit)
        return jsonify(result), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except QueryExecutionError as e:
        logger.error(f"[LIST_PORTFOLIOS] Error: {e}")
        return jsonify({"error": "Portfolio query failed"}), 503
    except Exception as e:
        logger.exception(f"[LIST_PORTFOLIOS] Unexpected error: {e}")
        return jsonify({"error": str(e)}), 500


@app.route("/api/portfolios/<portfolio_id>", methods=["GET"])
def get_portfolio(portfolio_id):
    try:
        portfolio = get_portfolio_by_id(portfolio_id)
        if not portfolio:
            return jsonify({"error": "Portfolio not found"}), 404
        return jsonify(portfolio), 200
    except QueryExecutionError as e:
        logger.error(f"[GET_PORTFOLIO] Error: {e}")
        return jsonify({"error": "Portfolio query failed"}), 503
    except Exception as e:
        logger.exception(f"[GET_PORTFOLIO] Unexpected error: {e}")
        return jsonify({"error": str(e)}), 500


@app.route("/api/users/<user_id>/portfolios", methods=["GET"])
def user_portfolios(user_id):
    try:
        sort, page, limit = _listing_params()
        result = list_user_portfolios(user_id, sort=sort, page=page, limit=limit)
        return jsonify(result), 200
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except QueryExecutionError as e:
        logger.error(f"[USER_PORTFOLIOS] Error: {e}")
        return jsonify({"error": "Portfolio query failed"}), 503
    except Exception as e:
        logger.exception(f"[USER_PORTFOLIOS] Unexpected error: {e}")
        return jsonify({"error": str(e)}), 500


# ------------------------------
# Entry
# ------------------------------
if __name__ == "__main__":
    init_db()
    port = int(os.environ.get("PORT", 5000))
    app.run(host="0.0.0.0", port=port)
