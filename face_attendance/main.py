# face_attendance/main.py
"""
Face Attendance - Main Entry Point.

File điều phối: nối camera, detector, lõi nhận diện, storage và web server.

Usage:
    python -m face_attendance.main                    # Chạy với mặc định
    python -m face_attendance.main --threshold 0.9    # Ngưỡng similarity
    python -m face_attendance.main --no-web --headless
"""
import os
import sys
import logging
import argparse
import threading

# === SETUP DISPLAY TRƯỚC KHI IMPORT CV2 ===
if os.environ.get("DISPLAY", "") == "" and sys.platform != "win32":
    os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from .core import settings, CameraManager, CameraConfig
from .core.errors import DuplicateIdentity, InvalidRegion, StoreUnavailable
from .data import AttendanceDatabase, LocalCache
from .detect import create_detector, DetectionState
from .processing import AttendanceService, AttendanceSession, DetectionLoop, DisplayHandler
from .recognition import Matcher

logger = logging.getLogger(__name__)

WINDOW_NAME = "Face Attendance"


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler('attendance.log', encoding='utf-8'),
            logging.StreamHandler()
        ]
    )


def parse_arguments(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description='Face Attendance - one attendance record per person per day',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m face_attendance.main                    # Run with defaults
  python -m face_attendance.main --threshold 0.9    # Custom threshold
  python -m face_attendance.main --no-web --headless
        """
    )

    parser.add_argument(
        '--threshold', '-t',
        type=float,
        metavar='VALUE',
        help=f'Cosine similarity threshold (default: {settings.RECOGNITION_THRESHOLD})'
    )
    parser.add_argument('--no-web', action='store_true', help='Disable web server')
    parser.add_argument(
        '--port', '-p',
        type=int,
        metavar='PORT',
        help=f'Web server port (default: {settings.WEB_PORT})'
    )
    parser.add_argument('--headless', action='store_true', help='Run without GUI window')
    parser.add_argument('--gui', action='store_true', help='Force GUI mode')
    parser.add_argument(
        '--camera', '-c',
        type=int,
        default=0,
        metavar='ID',
        help='Camera device ID (default: 0)'
    )
    parser.add_argument(
        '--resolution', '-r',
        type=str,
        metavar='WxH',
        help=f'Camera resolution (default: {settings.CAMERA_WIDTH}x{settings.CAMERA_HEIGHT})'
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Verbose logging')

    return parser.parse_args(argv)


def apply_arguments(args):
    """Apply command line arguments to settings. Returns list of changes."""
    changes = []

    if args.threshold is not None:
        settings.RECOGNITION_THRESHOLD = args.threshold
        changes.append(f"Threshold: {args.threshold}")

    if args.no_web:
        settings.ENABLE_WEB_SERVER = False
        changes.append("Web: disabled")
    if args.port:
        settings.WEB_PORT = args.port
        changes.append(f"Port: {args.port}")

    if args.headless:
        settings.HEADLESS_MODE = True
        settings.OVERLAY_ENABLED = False
        changes.append("Mode: headless")
    if args.gui:
        settings.FORCE_GUI_MODE = True
        settings.HEADLESS_MODE = False
        settings.OVERLAY_ENABLED = True
        changes.append("Mode: GUI (forced)")

    if args.resolution:
        try:
            w, h = map(int, args.resolution.lower().split('x'))
        except ValueError:
            logger.warning(f"⚠️ Invalid resolution format: {args.resolution} (use WxH, e.g., 640x480)")
        else:
            settings.CAMERA_WIDTH = w
            settings.CAMERA_HEIGHT = h
            changes.append(f"Resolution: {w}x{h}")

    return changes


def build_service() -> AttendanceService:
    database = AttendanceDatabase(settings.DB_PATH)
    service = AttendanceService(
        database=database,
        cache=LocalCache(settings.CACHE_PATH),
        session=AttendanceSession(window_seconds=settings.DETECTION_WINDOW_SECONDS),
        images_dir=settings.IMAGES_DIR
    )
    try:
        database.init_db()
    except StoreUnavailable as e:
        logger.warning(f"⚠️ Không khởi tạo được database ({e}), chạy với local cache")
    service.load_gallery()
    return service


def start_web_server(service, detector):
    """Chạy web server trong thread riêng."""
    from .web import create_app, run_server

    try:
        run_server(create_app(service, detector), port=settings.WEB_PORT)
    except OSError as e:
        logger.error(f"Web server error: {e}")


def handle_keyboard(key: int, frame, report, loop) -> bool:
    """
    Xử lý phím nhấn.

    Returns:
        True nếu nên thoát chương trình
    """
    service = loop.service

    if key == ord('q'):
        return True

    if key == ord('m'):
        result = service.mark_attendance()
        loop.announce(result)
        print(("✅ " if result.is_marked else "❌ ") + result.message)

    elif key == ord('l'):
        print("\n📋 Registered:")
        identities = sorted(service.gallery.all(), key=lambda i: i.display_name)
        for i, identity in enumerate(identities, 1):
            print(f"   {i}. {identity.display_name} ({identity.external_id}) id={identity.record_id}")
        if not identities:
            print("   (trống)")
        print()

    elif key == ord('d'):
        name = input("Tên cần xóa (Enter=hủy): ").strip()
        if name:
            identity = service.gallery.get(name)
            if identity is None:
                print(f"   ❌ Không tìm thấy: {name}")
            else:
                try:
                    service.remove(identity.record_id)
                except StoreUnavailable as e:
                    print(f"   ❌ Database không khả dụng, chưa xóa: {e}")
                else:
                    print(f"   ✅ Đã xóa: {name}")

    elif key == ord('r'):
        if report.state != DetectionState.SINGLE:
            print("   ❌ Cần đúng 1 khuôn mặt trong khung hình để đăng ký")
            return False
        name = input("Tên: ").strip()
        usn = input("USN: ").strip()
        try:
            service.enroll(name, usn, frame=frame, box=report.boxes[0])
        except DuplicateIdentity as e:
            print(f"   ❌ {e}")
        except (InvalidRegion, ValueError) as e:
            print(f"   ❌ Đăng ký thất bại: {e}")
        else:
            print(f"   ✅ Đã đăng ký: {name}")

    return False


def main(argv=None):
    """Main entry point."""
    args = parse_arguments(argv)
    setup_logging(args.verbose)

    for change in apply_arguments(args):
        logger.info(f"🔧 {change}")

    # === 1. STORAGE + GALLERY ===
    service = build_service()

    # === 2. CAMERA ===
    camera = CameraManager(
        device_id=args.camera,
        config=CameraConfig(width=settings.CAMERA_WIDTH, height=settings.CAMERA_HEIGHT)
    )
    if not camera.open():
        return 1

    # === 3. DETECTOR ===
    try:
        detector = create_detector(settings)
    except RuntimeError as e:
        logger.error(f"Lỗi khởi tạo detector: {e}")
        camera.release()
        return 1

    display = DisplayHandler(overlay_enabled=settings.OVERLAY_ENABLED)
    loop = DetectionLoop(
        camera=camera,
        detector=detector,
        service=service,
        matcher=Matcher(settings.RECOGNITION_THRESHOLD),
        display=display if settings.OVERLAY_ENABLED else None,
        refresh_interval=settings.GALLERY_REFRESH_SECONDS
    )

    logger.info(f"👥 Gallery: {len(service.gallery)} người | "
                f"threshold={settings.RECOGNITION_THRESHOLD} | "
                f"window={settings.DETECTION_WINDOW_SECONDS}s")

    # === 4. WEB SERVER (background) ===
    if settings.ENABLE_WEB_SERVER:
        threading.Thread(target=start_web_server, args=(service, detector), daemon=True).start()

    def on_frame(frame, report):
        if settings.HEADLESS_MODE:
            return False
        key = display.show(WINDOW_NAME, frame)
        return handle_keyboard(key, frame, report, loop)

    if not settings.HEADLESS_MODE:
        print("⌨️  m=điểm danh | r=đăng ký | d=xóa | l=list | q=thoát")

    # === 5. MAIN LOOP ===
    try:
        loop.run(on_frame=on_frame)
    except KeyboardInterrupt:
        logger.info("🛑 Đã dừng (Ctrl+C)")
    finally:
        loop.stop()
        camera.release()
        display.destroy_windows()

    return 0


if __name__ == "__main__":
    sys.exit(main())
