# ============================================================
# FILE: main.py
# ============================================================

import logging
import os
import signal
import sys
import threading
import time
from datetime import datetime
from typing import Optional

from utils.config_loader import Config
from storage.media_store import MediaStore, SnapshotRecorder
from capture.camera import Camera
from motion.config import EngineConfig
from motion.engine import CycleOutcome, CycleStatus, EngineState, MotionEngine
from motion.errors import MotionError
from motion.scheduler import CycleScheduler
from alerts.mqtt_client import MQTTClient

logger = logging.getLogger(__name__)


def setup_logging(config: Config):
    level_name = str(config.get('logging.level', 'INFO')).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(config.get('logging.file', 'motion_capture.log')),
            logging.StreamHandler()
        ]
    )


class MotionCaptureSystem:
    def __init__(self, config, camera=None, install_signal_handlers: bool = True):
        logger.info("Initializing Motion Capture System...")

        self.config = config if isinstance(config, Config) else Config(config)
        self.engine_config = EngineConfig.from_config(self.config)
        self.running = False
        self.engine: Optional[MotionEngine] = None
        self.scheduler: Optional[CycleScheduler] = None

        self._latest_lock = threading.Lock()
        self.latest_outcome: Optional[CycleOutcome] = None
        self.last_error: Optional[MotionError] = None

        self._initialize_components(camera)

        if install_signal_handlers:
            signal.signal(signal.SIGINT, self._signal_handler)
            signal.signal(signal.SIGTERM, self._signal_handler)

        logger.info("System initialization complete")

    def _initialize_components(self, camera):
        # Camera
        if camera is None:
            device_id = self.config.get('camera.device_id', 0)
            camera = Camera(device_id, self.engine_config.size)
        self.camera = camera

        # Media storage
        media_path = self.config.get('storage.media_path', './media/')
        self.media_store = MediaStore(media_path)

        self.snapshot_recorder = None
        if self.config.get('snapshots.enabled', False):
            self.snapshot_recorder = SnapshotRecorder(
                self.media_store,
                self.config.get('snapshots.every_n_cycles', 5),
                self.engine_config.box_color,
                self.engine_config.emit_box
            )

        # MQTT
        mqtt_enabled = self.config.get('mqtt.enabled', False)
        mqtt_broker = self.config.get('mqtt.broker', 'localhost')
        mqtt_port = self.config.get('mqtt.port', 1883)
        mqtt_topics = self.config.get('mqtt.topics', {})
        self.mqtt_client = MQTTClient(mqtt_broker, mqtt_port, mqtt_topics, mqtt_enabled)

    def _signal_handler(self, sig, frame):
        logger.info("Shutdown signal received")
        self.stop()
        sys.exit(0)

    def _build_engine(self) -> MotionEngine:
        return MotionEngine(
            self.engine_config,
            score_sink=self._on_score,
            box_sink=self._on_box,
            error_sink=self._on_error,
        )

    def _on_score(self, score: int):
        logger.debug(f"Motion score: {score}")

    def _on_box(self, box):
        if box is not None:
            logger.debug(f"Motion box: {box}")

    def _on_error(self, error: MotionError):
        self.last_error = error

    def handle_outcome(self, outcome: CycleOutcome):
        if outcome.status is CycleStatus.COMPLETED:
            with self._latest_lock:
                self.latest_outcome = outcome
            if self.snapshot_recorder:
                self.snapshot_recorder.handle(outcome)
            self.mqtt_client.publish_outcome(outcome)

    def get_latest_outcome(self) -> Optional[CycleOutcome]:
        with self._latest_lock:
            return self.latest_outcome

    def monitor_system_health(self):
        logger.info("Starting system health monitor...")
        interval = self.config.get('system.health_interval_seconds', 30)

        while self.running:
            try:
                if not self.camera.is_connected():
                    logger.warning("Camera disconnected, attempting restart...")
                    self.camera.restart()

                self.mqtt_client.publish('status', {
                    'status': 'healthy',
                    'engine': self.engine.state.value if self.engine else 'idle',
                    'cycles': self.engine.cycle_count if self.engine else 0,
                    'timestamp': datetime.now().isoformat()
                })

                time.sleep(interval)

            except Exception as e:
                logger.error(f"Error in health monitor: {e}")
                time.sleep(interval)

    def cleanup_old_data(self):
        logger.info("Starting cleanup job...")
        retention_days = self.config.get('storage.retention_days', 30)

        while self.running:
            try:
                logger.info("Running cleanup...")
                self.media_store.cleanup_old_media(retention_days)

                # Run daily
                time.sleep(86400)

            except Exception as e:
                logger.error(f"Error in cleanup: {e}")
                time.sleep(3600)

    def start_engine(self):
        if not self.camera.is_connected():
            self.camera.restart()
        # A stopped engine cannot be restarted, so every start gets a fresh one.
        if self.engine is None or self.engine.state is EngineState.STOPPED:
            self.engine = self._build_engine()
        self.engine.start(self.camera)

        self.scheduler = CycleScheduler(
            self.engine,
            self.engine_config.capture_interval_ms,
            on_outcome=self.handle_outcome
        )
        self.scheduler.start()

    def start(self, block: bool = True):
        logger.info("Starting Motion Capture System...")
        self.running = True

        self.start_engine()

        health_thread = threading.Thread(target=self.monitor_system_health, daemon=True)
        cleanup_thread = threading.Thread(target=self.cleanup_old_data, daemon=True)
        health_thread.start()
        cleanup_thread.start()

        logger.info("System started successfully")

        if not block:
            return

        # Keep main thread alive
        try:
            while self.running:
                time.sleep(1)
        except KeyboardInterrupt:
            self.stop()

    def stop(self):
        logger.info("Stopping system...")
        self.running = False

        if self.scheduler:
            self.scheduler.stop(timeout=5)
        if self.engine:
            self.engine.stop()

        self.camera.release()
        self.mqtt_client.disconnect()

        logger.info("System stopped")


def main():
    config = Config(os.getenv('MOTION_CONFIG', 'config.yaml'))
    setup_logging(config)
    system = MotionCaptureSystem(config)

    # Start web UI in separate thread if requested
    if os.getenv('START_WEB_UI', 'false').lower() == 'true':
        from ui.app import start_web_ui
        threading.Thread(
            target=start_web_ui,
            args=(system, config.get('ui.host', '0.0.0.0'), config.get('ui.port', 5000)),
            daemon=True
        ).start()

    system.start()


if __name__ == "__main__":
    main()
