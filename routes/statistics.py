"""Authority dashboards: summaries, ranking, heat map, and audit history."""
from flask import Blueprint, current_app, request

from utils import follow_up_ledger, statistics
from utils.decorators import authority_required
from utils.responses import success_response

statistics_bp = Blueprint("statistics", __name__, url_prefix="/api/statistics")


@statistics_bp.route("/general", methods=["GET"])
@authority_required
def general():
    window = int(current_app.config.get("STATS_WINDOW_DAYS", 30))
    return success_response(statistics.general_summary(window_days=window))


@statistics_bp.route("/periodo/<string:period>", methods=["GET"])
@authority_required
def by_period(period):
    return success_response(statistics.period_summary(period), periodo=period)


@statistics_bp.route("/ranking-autoridades", methods=["GET"])
@authority_required
def authority_ranking():
    limit = int(current_app.config.get("RANKING_LIMIT", 10))
    return success_response(statistics.authority_ranking(limit=limit))


@statistics_bp.route("/mapa-calor", methods=["GET"])
@authority_required
def heat_map():
    return success_response(statistics.heat_map())


@statistics_bp.route("/historial", methods=["GET"])
@authority_required
def history():
    try:
        limit = int(request.args.get("limit", 100))
    except (TypeError, ValueError):
        limit = 100
    limit = max(1, min(limit, 500))
    return success_response(follow_up_ledger.recent_history(limit=limit))
