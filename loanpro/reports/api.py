from flask import request, jsonify, make_response

from loanpro.db import fetch_all
from loanpro.models import Loan
from loanpro.reports.portfolio import dashboard_stats, portfolio_at_risk, portfolio_workbook, PAR_THRESHOLDS

from . import admin_api_bp


def _loans():
    return [Loan.from_row(r) for r in fetch_all("loans")]


@admin_api_bp.route('/dashboard-stats', methods=['GET'])
def get_dashboard_stats():
    stats = dashboard_stats(fetch_all("borrowers"), _loans(), fetch_all("repayments"))
    return jsonify({"status": "success", **stats}), 200


@admin_api_bp.route('/par', methods=['GET'])
def get_par():
    """Portfolio at risk. Optional query param: days=30,60,90"""
    raw = request.args.get("days")
    try:
        thresholds = tuple(int(d) for d in raw.split(",")) if raw else PAR_THRESHOLDS
    except ValueError:
        return jsonify({"status": "error", "message": "days must be a comma separated list of integers"}), 400
    return jsonify({"status": "success", "par": portfolio_at_risk(_loans(), thresholds)}), 200


@admin_api_bp.route('/portfolio/excel', methods=['GET'])
def portfolio_excel():
    """
    Export the loan book with a PAR summary sheet.
    """
    try:
        content = portfolio_workbook(_loans())
    except Exception as e:
        return jsonify({'status': 'error', 'message': f'Failed to generate portfolio Excel: {str(e)}'}), 500
    response = make_response(content)
    response.headers["Content-Disposition"] = "attachment; filename=loan_portfolio.xlsx"
    response.headers["Content-Type"] = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
    return response
