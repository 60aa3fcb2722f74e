# face_attendance/web/management.py
"""
Web Management API - đăng ký / xóa học viên và điểm danh từ xa.

Endpoints:
- GET    /api/get-students            - Danh sách học viên (kèm embedding)
- POST   /api/register-student        - Đăng ký (faceEmbedding hoặc faceImage base64)
- DELETE /api/delete-student/<id>     - Xóa học viên (idempotent)
- GET    /api/get-student/<usn>       - Một học viên theo mã số
- GET    /api/get-attendance[?date=]  - Danh sách điểm danh
- POST   /api/mark-attendance         - Điểm danh người camera vừa nhận diện
- DELETE /api/clear-attendance        - Xóa toàn bộ điểm danh
- GET    /api/stats                   - Thống kê hôm nay
- GET    /api/export[?date=]          - Tải CSV
"""
import io
import os
import base64
import binascii
import logging
import tempfile

from flask import Blueprint, current_app, jsonify, request, send_file

from ..core.errors import DuplicateIdentity, InvalidRegion, StoreUnavailable

logger = logging.getLogger(__name__)

# Blueprint để tích hợp vào server.py
management_bp = Blueprint('management', __name__)


def init_management(app, service, detector=None):
    """Gắn service (và detector cho upload ảnh) vào Flask app."""
    app.config['ATTENDANCE_SERVICE'] = service
    app.config['FACE_DETECTOR'] = detector
    logger.info("[Web Management] Initialized")


def _service():
    return current_app.config['ATTENDANCE_SERVICE']


def _error(message, status):
    return jsonify({'success': False, 'error': message}), status


@management_bp.errorhandler(StoreUnavailable)
def _store_unavailable(e):
    logger.warning(f"[Web] Store unavailable: {e}")
    return _error('Database not available', 503)


def _decode_image(data_url: str) -> bytes:
    """'data:image/jpeg;base64,....' hoặc base64 thuần -> bytes."""
    payload = data_url.split(',', 1)[1] if ',' in data_url else data_url
    return base64.b64decode(payload, validate=True)


# ============================================================================
# STUDENTS
# ============================================================================

@management_bp.route('/api/get-students', methods=['GET'])
def api_get_students():
    """Danh sách identity trong gallery (đã merge database + cache)."""
    students = [identity.to_dict() for identity in _service().gallery.all()]
    return jsonify(students)


@management_bp.route('/api/register-student', methods=['POST'])
def api_register_student():
    """
    POST /api/register-student

    JSON:
        {"name": "...", "usn": "...", "faceEmbedding": [128 số]}
        hoặc {"name": "...", "usn": "...", "faceImage": "data:image/jpeg;base64,..."}
    """
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        return _error('Invalid data: JSON body required', 400)

    name = data.get('name', '')
    usn = data.get('usn', '')
    embedding = data.get('faceEmbedding')
    face_image = data.get('faceImage')

    if not isinstance(name, str) or not isinstance(usn, str):
        return _error('Invalid data: name and usn must be strings', 400)
    if face_image is not None and not isinstance(face_image, str):
        return _error('Invalid data: faceImage must be a base64 string', 400)

    image_bytes = None
    if face_image:
        try:
            image_bytes = _decode_image(face_image)
        except (binascii.Error, ValueError):
            return _error('Invalid data: faceImage is not base64', 400)

    service = _service()
    try:
        if embedding is not None:
            identity = service.enroll(name, usn, embedding=embedding, image=image_bytes)
        elif image_bytes is not None:
            detector = current_app.config.get('FACE_DETECTOR')
            if detector is None:
                return _error('Face detector not available', 503)
            identity = service.enroll_from_image(name, usn, image_bytes, detector)
        else:
            return _error('Invalid data: faceEmbedding or faceImage required', 400)
    except DuplicateIdentity as e:
        if e.field == 'usn':
            return _error('USN already exists', 400)
        return _error('Person already registered', 400)
    except InvalidRegion as e:
        return _error(str(e), 400)
    except (TypeError, ValueError) as e:
        return _error(f'Invalid data: {e}', 400)

    return jsonify({
        'success': True,
        'message': 'Student registered successfully',
        'student': identity.to_dict(include_embedding=False)
    })


@management_bp.route('/api/delete-student/<int:record_id>', methods=['DELETE'])
def api_delete_student(record_id):
    _service().remove(record_id)
    return jsonify({'success': True, 'message': 'Student deleted'})


@management_bp.route('/api/get-student/<usn>', methods=['GET'])
def api_get_student(usn):
    usn = usn.upper()
    for identity in _service().gallery.all():
        if identity.external_id == usn:
            return jsonify(identity.to_dict(include_embedding=False))
    return _error('Student not found', 404)


# ============================================================================
# ATTENDANCE
# ============================================================================

@management_bp.route('/api/get-attendance', methods=['GET'])
def api_get_attendance():
    date = request.args.get('date') or None
    return jsonify(_service().attendance_records(date))


@management_bp.route('/api/mark-attendance', methods=['POST'])
def api_mark_attendance():
    """Commit observation hiện tại của camera session."""
    result = _service().mark_attendance()
    payload = result.to_dict()
    payload['success'] = result.is_marked
    return jsonify(payload), (200 if result.is_marked else 409)


@management_bp.route('/api/clear-attendance', methods=['DELETE'])
def api_clear_attendance():
    _service().clear_attendance()
    return jsonify({'success': True, 'message': 'All attendance records cleared'})


@management_bp.route('/api/stats', methods=['GET'])
def api_stats():
    return jsonify(_service().stats())


@management_bp.route('/api/export', methods=['GET'])
def api_export():
    """Export CSV và tải về."""
    date = request.args.get('date') or None
    # File tạm riêng cho mỗi request (server chạy threaded)
    fd, filepath = tempfile.mkstemp(prefix="face_attendance_", suffix=".csv")
    os.close(fd)
    try:
        _service().export_csv(filepath, date)
        with open(filepath, 'rb') as f:
            payload = io.BytesIO(f.read())
    finally:
        os.remove(filepath)

    return send_file(
        payload,
        mimetype='text/csv',
        as_attachment=True,
        download_name="attendance_records.csv"
    )
