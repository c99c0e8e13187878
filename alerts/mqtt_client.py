# ============================================================
# FILE: alerts/mqtt_client.py
# ============================================================

import json
import logging
from datetime import datetime
from typing import Dict, Any

import paho.mqtt.client as mqtt

from motion.engine import CycleOutcome, CycleStatus

logger = logging.getLogger(__name__)


class MQTTClient:
    def __init__(self, broker: str, port: int, topics: Dict[str, str], enabled: bool = True):
        self.broker = broker
        self.port = port
        self.topics = topics or {}
        self.enabled = enabled
        self.client = None

        if self.enabled:
            self._initialize()
        else:
            logger.info("MQTT disabled in configuration")

    def _initialize(self):
        try:
            self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
            self.client.on_connect = self._on_connect
            self.client.on_disconnect = self._on_disconnect
            self.client.connect(self.broker, self.port, 60)
            self.client.loop_start()
            logger.info(f"MQTT client initialized: {self.broker}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to initialize MQTT: {e}")
            self.client = None
            self.enabled = False

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"MQTT connection failed: {reason_code}")
        else:
            logger.info("Connected to MQTT broker")

    def _on_disconnect(self, client, userdata, flags, reason_code, properties):
        logger.warning("Disconnected from MQTT broker")

    def publish(self, topic_key: str, payload: Dict[str, Any]):
        if not self.enabled or not self.client:
            return

        topic = self.topics.get(topic_key)
        if not topic:
            logger.error(f"Unknown topic key: {topic_key}")
            return

        try:
            message = json.dumps(payload)
            self.client.publish(topic, message)
            logger.debug(f"Published to {topic}: {message}")
        except Exception as e:
            logger.error(f"Failed to publish MQTT message: {e}")

    def publish_outcome(self, outcome: CycleOutcome):
        if outcome.status is not CycleStatus.COMPLETED:
            return

        box = outcome.box
        self.publish('motion', {
            'score': outcome.score,
            'box': None if box is None or box.is_empty else box.as_dict(),
            'timestamp': datetime.now().isoformat()
        })

    def disconnect(self):
        if self.client:
            self.client.loop_stop()
            self.client.disconnect()
            self.client = None
