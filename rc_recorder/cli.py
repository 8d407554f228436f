import signal
import sys
from enum import StrEnum
from pathlib import Path
from typing import Optional

import typer
from loguru import logger
from typing_extensions import Annotated

from .bus import MqttBus
from .errors import BusError, DirectoryError
from .recorder import RecordListener
from .writer import RecordWriter

DEFAULT_CLIENT_ID = "robocar-rc-recorder"
DEFAULT_BROKER = "tcp://127.0.0.1:1883"

LOG_FORMAT = (
    "<green>{time:HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"
)


class LogLevel(StrEnum):
    TRACE = "TRACE"
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"


def configure_logging(level: str = "INFO"):
    logger.remove()
    logger.add(sys.stderr, level=level, colorize=True, format=LOG_FORMAT)


def record(
    mqtt_topic_records: Annotated[
        str, typer.Option(envvar="MQTT_TOPIC_RECORDS", help="Mqtt topic that contains record data for training")
    ],
    record_path: Annotated[Path, typer.Option(envvar="RECORD_PATH", help="Path where to write records files")],
    *,
    mqtt_broker: Annotated[str, typer.Option(envvar="MQTT_BROKER", help="Broker url")] = DEFAULT_BROKER,
    mqtt_username: Annotated[Optional[str], typer.Option(envvar="MQTT_USERNAME", help="Broker username")] = None,
    mqtt_password: Annotated[Optional[str], typer.Option(envvar="MQTT_PASSWORD", help="Broker password")] = None,
    mqtt_client_id: Annotated[str, typer.Option(envvar="MQTT_CLIENT_ID", help="Mqtt client id")] = DEFAULT_CLIENT_ID,
    mqtt_qos: Annotated[int, typer.Option(envvar="MQTT_QOS", min=0, max=2, help="Qos of the subscription")] = 0,
    log_level: Annotated[
        LogLevel, typer.Option("--log", envvar="LOG_LEVEL", case_sensitive=False, help="Log level")
    ] = LogLevel.INFO,
):
    """Record training messages published on the bus as image and json files."""
    configure_logging(log_level.value)

    try:
        writer = RecordWriter(record_path)
    except DirectoryError as e:
        logger.error(f"Unable to init rc-recorder: {e}")
        raise typer.Exit(code=1)

    try:
        bus = MqttBus(mqtt_broker, client_id=mqtt_client_id, username=mqtt_username, password=mqtt_password)
        bus.connect()
    except BusError as e:
        logger.error(f"Unable to connect to mqtt bus: {e}")
        raise typer.Exit(code=1)

    listener = RecordListener().configure(bus=bus, topic=mqtt_topic_records, qos=mqtt_qos, callback=writer.handle)
    try:
        listener.start()
    except BusError as e:
        logger.error(f"Unable to subscribe to {mqtt_topic_records}: {e}")
        bus.disconnect()
        raise typer.Exit(code=1)
    previous_handler = signal.signal(signal.SIGTERM, lambda signum, frame: listener.stop())

    try:
        while listener.is_alive():
            listener.join(timeout=1.0)
    except KeyboardInterrupt:
        logger.info("Recording stopped by user.")
    finally:
        signal.signal(signal.SIGTERM, previous_handler)
        try:
            listener.stop()
            listener.join(timeout=5)
        except Exception as e:
            logger.error(f"Error occurred while stopping the recorder: {e}")
        bus.disconnect()


app = typer.Typer(add_completion=False)
app.command()(record)


if __name__ == "__main__":
    app()
