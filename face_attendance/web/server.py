# face_attendance/web/server.py
"""
Web server đơn giản để xem điểm danh từ xa qua WiFi.
Truy cập: http://<IP>:5000
"""
import os
import socket
import logging

from flask import Flask, abort, current_app, render_template_string, send_from_directory

from ..core.errors import StoreUnavailable
from .management import management_bp, init_management

logger = logging.getLogger(__name__)

HTML_TEMPLATE = '''
<!DOCTYPE html>
<html>
<head>
    <title>Face Attendance</title>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1">
    <meta http-equiv="refresh" content="30">
    <style>
        * { font-family: 'Segoe UI', Arial, sans-serif; margin: 0; padding: 0; box-sizing: border-box; }
        body { background: #f5f7fa; color: #333; padding: 15px; }
        .container { max-width: 900px; margin: 0 auto; }
        h1 { color: #2e7d32; margin-bottom: 20px; text-align: center; font-size: 1.5em; }
        .stats { display: grid; grid-template-columns: repeat(auto-fit, minmax(140px, 1fr)); gap: 12px; margin-bottom: 20px; }
        .stat-card { background: #fff; border: 1px solid #e0e0e0; border-radius: 12px; padding: 15px; text-align: center; }
        .stat-num { font-size: 2em; font-weight: bold; color: #4CAF50; }
        .stat-label { font-size: 0.8em; color: #666; margin-top: 5px; }
        .section { background: #fff; border-radius: 12px; padding: 15px; margin-bottom: 15px; border: 1px solid #e0e0e0; }
        .section-title { color: #2e7d32; margin-bottom: 12px; }
        table { width: 100%; border-collapse: collapse; font-size: 0.9em; }
        th { background: #4CAF50; color: #fff; padding: 10px; text-align: left; }
        td { padding: 10px; border-bottom: 1px solid #e0e0e0; }
        .warning { background: #fff3e0; color: #e65100; padding: 10px; border-radius: 8px; margin-bottom: 15px; }
        .no-data { text-align: center; color: #999; padding: 20px; }
        a.btn { background: #4CAF50; color: #fff; padding: 8px 16px; border-radius: 6px; text-decoration: none; }
    </style>
</head>
<body>
    <div class="container">
        <h1>📋 Attendance - {{ stats.date }}</h1>
        {% if stats.degraded %}
        <div class="warning">⚠️ Database not available - showing local cache</div>
        {% endif %}
        <div class="stats">
            <div class="stat-card"><div class="stat-num">{{ stats.totalStudents }}</div><div class="stat-label">Registered</div></div>
            <div class="stat-card"><div class="stat-num">{{ stats.presentToday }}</div><div class="stat-label">Present today</div></div>
            <div class="stat-card"><div class="stat-num">{{ stats.absentToday }}</div><div class="stat-label">Absent today</div></div>
        </div>
        <div class="section">
            <div class="section-title">✅ Today</div>
            {% if records %}
            <table>
                <tr><th>Name</th><th>USN</th><th>Time</th></tr>
                {% for r in records %}
                <tr><td>{{ r.name }}</td><td>{{ r.usn }}</td><td>{{ r.time }}</td></tr>
                {% endfor %}
            </table>
            {% else %}
            <p class="no-data">No attendance records for today.</p>
            {% endif %}
        </div>
        <div class="section">
            <div class="section-title">👥 Registered ({{ students|length }})</div>
            {% for s in students %}<span>{{ s.display_name }} ({{ s.external_id }})</span>{% if not loop.last %}, {% endif %}{% endfor %}
        </div>
        <p style="text-align:center"><a class="btn" href="/api/export">⬇️ Export CSV</a></p>
    </div>
</body>
</html>
'''


def create_app(service, detector=None, images_dir=None) -> Flask:
    """
    Tạo Flask app.

    Args:
        service: AttendanceService
        detector: face detector cho đăng ký bằng ảnh upload (optional)
        images_dir: thư mục ảnh học viên
    """
    app = Flask(__name__)
    app.config['IMAGES_DIR'] = os.path.abspath(images_dir or service.images_dir or 'student-images')
    init_management(app, service, detector)
    app.register_blueprint(management_bp)

    @app.route('/')
    def index():
        """Dashboard"""
        try:
            stats = service.stats()
        except StoreUnavailable:
            abort(503)
        records = service.today_records(stats['date'])
        return render_template_string(
            HTML_TEMPLATE,
            stats=stats,
            records=records,
            students=sorted(service.gallery.all(), key=lambda i: i.display_name)
        )

    @app.route('/student-images/<path:filename>')
    def student_image(filename):
        return send_from_directory(current_app.config['IMAGES_DIR'], filename)

    return app


def get_local_ip():
    """Lấy địa chỉ IP local của máy."""
    try:
        s = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        s.connect(("8.8.8.8", 80))
        ip = s.getsockname()[0]
        s.close()
        return ip
    except OSError:
        return "localhost"


def run_server(app: Flask, host='0.0.0.0', port=5000):
    """Chạy web server (blocking - gọi trong thread riêng)."""
    logger.info(f"🌐 Web Dashboard: http://{get_local_ip()}:{port}")
    app.run(host=host, port=port, debug=False, threaded=True, use_reloader=False)
