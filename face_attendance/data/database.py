# face_attendance/data/database.py
"""
Database SQLite cho hệ thống điểm danh.

Hai collection:
- students:   identity đã đăng ký (kèm embedding JSON)
- attendance: các lần điểm danh (append-only, xóa toàn bộ bằng clear)

Mỗi lần gọi mở connection MỚI (SQLite: nhiều reader, một writer).
Lỗi sqlite3 / IO được bọc thành StoreUnavailable.
Thread-safe cho main loop + web server thread.
"""
import csv
import json
import logging
import sqlite3
import threading
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from ..core.errors import DuplicateIdentity, StoreUnavailable

logger = logging.getLogger(__name__)

DB_PATH = "attendance.db"

CSV_HEADER = ['Name', 'USN', 'Date', 'Time']


class AttendanceDatabase:
    """Persistent store: students + attendance."""

    def __init__(self, db_path: str = DB_PATH):
        self.db_path = db_path
        # Lock để đảm bảo thread-safe khi write
        self._write_lock = threading.Lock()

    def get_connection(self) -> sqlite3.Connection:
        """Tạo kết nối mới. Dùng qua _session() để tự đóng."""
        conn = sqlite3.connect(self.db_path, timeout=10.0)
        conn.row_factory = sqlite3.Row
        return conn

    @contextmanager
    def _session(self, write: bool = False):
        """Connection + commit/rollback, bọc lỗi thành StoreUnavailable."""
        lock = self._write_lock if write else None
        if lock:
            lock.acquire()
        try:
            conn = self.get_connection()
        except sqlite3.Error as e:
            if lock:
                lock.release()
            raise StoreUnavailable(f"cannot open {self.db_path}: {e}") from e

        try:
            yield conn
            if write:
                conn.commit()
        except sqlite3.IntegrityError:
            conn.rollback()
            raise
        except sqlite3.Error as e:
            conn.rollback()
            raise StoreUnavailable(str(e)) from e
        finally:
            conn.close()
            if lock:
                lock.release()

    def init_db(self):
        """Khởi tạo bảng nếu chưa có."""
        with self._session(write=True) as conn:
            conn.execute('''
                CREATE TABLE IF NOT EXISTS students (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT UNIQUE NOT NULL,
                    usn TEXT UNIQUE,
                    registration_date TEXT,
                    embedding TEXT,
                    image_path TEXT
                )
            ''')
            conn.execute('''
                CREATE TABLE IF NOT EXISTS attendance (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    name TEXT NOT NULL,
                    usn TEXT,
                    date TEXT NOT NULL,
                    time TEXT,
                    timestamp INTEGER
                )
            ''')
            conn.execute('CREATE INDEX IF NOT EXISTS idx_attendance_date ON attendance (date)')

    # === STUDENTS ===
    @staticmethod
    def _student_row(row) -> Dict[str, Any]:
        data = {
            'id': row['id'],
            'name': row['name'],
            'usn': row['usn'],
            'registrationDate': row['registration_date'],
            'imagePath': row['image_path'],
        }
        if row['embedding']:
            data['faceEmbedding'] = json.loads(row['embedding'])
        return data

    def list_students(self) -> List[Dict[str, Any]]:
        with self._session() as conn:
            rows = conn.execute('SELECT * FROM students ORDER BY id').fetchall()
        return [self._student_row(row) for row in rows]

    def add_student(self, identity, image_path: Optional[str] = None) -> int:
        """
        Thêm student mới.

        Returns:
            id của record mới

        Raises:
            DuplicateIdentity nếu name hoặc usn đã tồn tại
        """
        embedding = None
        if identity.embedding is not None:
            embedding = json.dumps([float(v) for v in identity.embedding])

        try:
            with self._session(write=True) as conn:
                cursor = conn.execute('''
                    INSERT INTO students (name, usn, registration_date, embedding, image_path)
                    VALUES (?, ?, ?, ?, ?)
                ''', (identity.display_name, identity.external_id, identity.enrolled_at,
                      embedding, image_path))
                return cursor.lastrowid
        except sqlite3.IntegrityError as e:
            field = 'usn' if 'usn' in str(e) else 'name'
            key = identity.external_id if field == 'usn' else identity.display_name
            raise DuplicateIdentity(key, field) from e

    def delete_student(self, record_id) -> Optional[str]:
        """
        Xóa student theo id. Không có thì không làm gì.

        Returns:
            image_path của student đã xóa (để caller xóa file), hoặc None
        """
        with self._session(write=True) as conn:
            row = conn.execute('SELECT image_path FROM students WHERE id = ?', (record_id,)).fetchone()
            if row is None:
                return None
            conn.execute('DELETE FROM students WHERE id = ?', (record_id,))
        return row['image_path']

    # === ATTENDANCE ===
    def list_attendance(self, date: Optional[str] = None) -> List[Dict[str, Any]]:
        """Tất cả record, hoặc chỉ record của một ngày."""
        with self._session() as conn:
            if date is None:
                rows = conn.execute(
                    'SELECT name, usn, date, time, timestamp FROM attendance ORDER BY timestamp'
                ).fetchall()
            else:
                rows = conn.execute(
                    'SELECT name, usn, date, time, timestamp FROM attendance '
                    'WHERE date = ? ORDER BY timestamp', (date,)
                ).fetchall()
        return [dict(row) for row in rows]

    def append_attendance(self, record):
        with self._session(write=True) as conn:
            conn.execute('''
                INSERT INTO attendance (name, usn, date, time, timestamp)
                VALUES (?, ?, ?, ?, ?)
            ''', (record.display_name, record.external_id, record.date,
                  record.time, record.timestamp))

    def clear_attendance(self) -> int:
        """Xóa toàn bộ attendance. Returns số record đã xóa."""
        with self._session(write=True) as conn:
            cursor = conn.execute('DELETE FROM attendance')
            return cursor.rowcount

    # === REPORTS ===
    def get_stats(self, today: str) -> Dict[str, int]:
        with self._session() as conn:
            total = conn.execute('SELECT COUNT(*) FROM students').fetchone()[0]
            present = conn.execute(
                'SELECT COUNT(DISTINCT lower(name)) FROM attendance WHERE date = ?', (today,)
            ).fetchone()[0]
        return {
            'totalStudents': total,
            'presentToday': present,
            'absentToday': max(0, total - present),
        }

    def export_to_csv(self, output_path: str, date: Optional[str] = None) -> str:
        """Export attendance ra CSV (Name, USN, Date, Time)."""
        rows = self.list_attendance(date)
        try:
            with open(output_path, 'w', newline='', encoding='utf-8-sig') as f:
                writer = csv.writer(f)
                writer.writerow(CSV_HEADER)
                for row in rows:
                    writer.writerow([row['name'], row['usn'], row['date'], row['time']])
        except OSError as e:
            raise StoreUnavailable(f"cannot write {output_path}: {e}") from e
        return output_path
