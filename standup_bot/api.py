"""Read-only HTTP endpoints for health checks and standup reports."""

from datetime import date, datetime

from flask import Flask, jsonify
from flask_cors import CORS

from .utils import StoreWriteError, logger


def create_app(store, context, today=date.today):
    app = Flask(__name__)
    CORS(app)

    def standup_report(standup_date):
        session = store.get_session_by_date(standup_date)
        if session is None:
            return jsonify({"error": f"No standup for {standup_date}", "date": standup_date}), 404

        records = store.list_records(session.id)
        return jsonify({
            "date": standup_date,
            "channel": context.channel_name,
            "session": session.to_dict(),
            "responses": [record.to_dict() for record in records],
        }), 200

    @app.route('/health', methods=['GET'])
    def health_check():
        if store.ping():
            return jsonify({"status": "healthy", "bot": "running"}), 200
        return jsonify({"status": "degraded", "bot": "running", "store": "unreachable"}), 503

    @app.route('/api/standups/today', methods=['GET'])
    def get_today_standup():
        try:
            return standup_report(today().isoformat())
        except StoreWriteError as e:
            logger.error("Error loading today's standup", e)
            return jsonify({"error": str(e)}), 500

    @app.route('/api/standups/<standup_date>', methods=['GET'])
    def get_standup(standup_date):
        try:
            datetime.strptime(standup_date, "%Y-%m-%d")
        except ValueError:
            return jsonify({"error": "Date must be YYYY-MM-DD"}), 400

        try:
            return standup_report(standup_date)
        except StoreWriteError as e:
            logger.error(f"Error loading standup for {standup_date}", e)
            return jsonify({"error": str(e)}), 500

    return app
