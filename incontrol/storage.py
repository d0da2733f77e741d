import json
import logging
from pathlib import Path
from typing import Any, List, Union

from .models import Device, DeviceListing, DeviceListMode

logger = logging.getLogger(__name__)


def _safe_name(value: str) -> str:
    """Make an API identifier usable as part of a file name."""
    return "".join(ch if ch.isalnum() or ch in "-_." else "_" for ch in value)


def save_json(output_dir: Path, name: str, payload: Any) -> Path:
    """Write a JSON payload to <output_dir>/<name>.json and return the path."""
    output_dir.mkdir(parents=True, exist_ok=True)
    file_path = output_dir / f"{_safe_name(name)}.json"
    logger.info("Saving %s to %s", name, file_path)

    with open(file_path, "w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)

    return file_path


def save_devices(
    output_dir: Path,
    org_id: str,
    devices: DeviceListing,
    mode: Union[DeviceListMode, str] = DeviceListMode.BASIC,
) -> Path:
    """
    Persist a device listing for one organization.

    File naming convention:
      - CSV exports: <org_id>_devices.csv (written verbatim)
      - basic/full:  <org_id>_devices_<mode>.json
    """
    list_mode = DeviceListMode(mode)
    if list_mode is DeviceListMode.CSV:
        if not isinstance(devices, str):
            raise RuntimeError("CSV device listings must be saved as text")
        output_dir.mkdir(parents=True, exist_ok=True)
        file_path = output_dir / f"{_safe_name(org_id)}_devices.csv"
        logger.info("Saving CSV device export for %s to %s", org_id, file_path)
        file_path.write_text(devices, encoding="utf-8")
        return file_path

    return save_json(output_dir, f"{org_id}_devices_{list_mode.value}", devices)


def load_devices(file_path: Path) -> List[Device]:
    """Load a device list previously written by save_devices()."""
    with open(file_path, "r", encoding="utf-8") as fh:
        try:
            devices = json.load(fh)
        except json.JSONDecodeError as exc:
            raise RuntimeError(f"Failed to parse {file_path}: {exc}") from exc

    if not isinstance(devices, list):
        raise RuntimeError(f"{file_path} does not contain a device list")
    return devices
