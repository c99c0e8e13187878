# ============================================================
# FILE: ui/app.py
# ============================================================

from flask import Flask, render_template, jsonify, Response
import logging
import time
from datetime import datetime

from motion.overlay import draw_motion_box, encode_image

logger = logging.getLogger(__name__)

app = Flask(__name__)
system = None  # Will be set when starting the UI

STREAM_VIEWS = ('capture', 'motion')


def init_app(motion_system):
    global system
    system = motion_system
    return app


def _render_view(outcome, view: str):
    if view == 'motion':
        return outcome.diff_buffer
    if not system.engine_config.emit_box:
        return outcome.frame
    return draw_motion_box(outcome.frame, outcome.box, system.engine_config.box_color)


@app.route('/')
def index():
    return render_template('index.html')


@app.route('/api/stream/<view>')
def stream(view):
    if view not in STREAM_VIEWS:
        return "Unknown view", 404

    interval = system.engine_config.capture_interval_ms / 1000.0 if system else 0.1

    def generate():
        last = None
        while system and system.running:
            try:
                outcome = system.get_latest_outcome()
                if outcome is not None and outcome is not last:
                    last = outcome
                    frame_bytes = encode_image(_render_view(outcome, view), '.jpg')
                    yield (b'--frame\r\n'
                           b'Content-Type: image/jpeg\r\n\r\n' + frame_bytes + b'\r\n')
            except Exception as e:
                logger.error(f"Error in {view} stream: {e}")
            time.sleep(interval)

    return Response(generate(), mimetype='multipart/x-mixed-replace; boundary=frame')


@app.route('/api/motion')
def motion():
    if not system:
        return jsonify({'status': 'offline'})

    outcome = system.get_latest_outcome()
    engine = system.engine
    box = outcome.box if outcome else None
    return jsonify({
        'status': engine.state.value if engine else 'idle',
        'score': outcome.score if outcome else None,
        'box': None if box is None or box.is_empty else box.as_dict(),
        'cycles': engine.cycle_count if engine else 0
    })


@app.route('/api/system-status')
def system_status():
    if not system:
        return jsonify({'status': 'offline'})

    try:
        engine = system.engine
        error = system.last_error
        status = {
            'status': 'online' if system.running else 'stopped',
            'camera_connected': system.camera.is_connected(),
            'engine_state': engine.state.value if engine else 'idle',
            'has_previous': engine.has_previous if engine else False,
            'cycles': engine.cycle_count if engine else 0,
            'last_error': str(error) if error else None
        }
        return jsonify(status)
    except Exception as e:
        logger.error(f"Error getting system status: {e}")
        return jsonify({'status': 'error', 'error': str(e)})


@app.route('/api/config')
def config_endpoint():
    if not system:
        return jsonify({'success': False, 'error': 'System not initialized'})

    return jsonify(system.engine_config.as_dict())


@app.route('/api/snapshot/<view>')
def snapshot(view):
    if view not in STREAM_VIEWS:
        return "Unknown view", 404
    if not system:
        return "System not initialized", 404

    outcome = system.get_latest_outcome()
    if outcome is None:
        return "No frame captured yet", 404

    try:
        data = encode_image(_render_view(outcome, view), '.png')
    except ValueError as e:
        logger.error(f"Error encoding snapshot: {e}")
        return "Failed to encode snapshot", 500

    filename = f"{view}Canvas_{datetime.now().strftime('%Y%m%d_%H%M%S')}.png"
    return Response(data, mimetype='image/png', headers={
        'Content-Disposition': f'attachment; filename={filename}'
    })


def start_web_ui(motion_system, host='0.0.0.0', port=5000):
    init_app(motion_system)
    logger.info(f"Starting web UI on {host}:{port}")
    app.run(host=host, port=port, debug=False, threaded=True)
