"""Hue bridge discovery and link-button registration."""

from pathlib import Path
from typing import Optional
import time

import requests

from ..config import AppConfig, HueConfig, save_config

DISCOVERY_URL = "https://discovery.meethue.com/"

# Bridge error type while the link button has not been pressed
LINK_BUTTON_NOT_PRESSED = 101


def discover_bridges(timeout: float = 5.0) -> list[dict]:
    """
    Discover Hue bridges through the public discovery endpoint.

    Returns list of dicts with 'id', 'ip', 'name' keys.
    """
    bridges_found = []
    try:
        response = requests.get(DISCOVERY_URL, timeout=timeout)
        if response.status_code == 200:
            for bridge in response.json():
                ip = bridge.get("internalipaddress", "")
                bridges_found.append({
                    "id": bridge.get("id", "unknown"),
                    "ip": ip,
                    "name": f"Philips Hue ({ip})",
                })
    except (requests.RequestException, ValueError) as e:
        print(f"[SETUP] Cloud discovery failed: {e}")

    return bridges_found


def register(
    bridge_ip: str,
    app_name: str = "hue_loops",
    timeout: int = 30,
    poll_interval: float = 1.0,
) -> str:
    """
    Register with a Hue bridge and return the new username.

    User must press the bridge button within timeout seconds.

    Raises:
        TimeoutError: If button not pressed in time
        RuntimeError: If the bridge rejects the registration
    """
    url = f"http://{bridge_ip}/api"
    payload = {"devicetype": f"{app_name}#device"}

    print("[SETUP] Please press the button on your Hue bridge...")
    print(f"[SETUP] Waiting up to {timeout} seconds...")

    start_time = time.time()
    while time.time() - start_time < timeout:
        try:
            result = requests.post(url, json=payload, timeout=5).json()
        except (requests.RequestException, ValueError) as e:
            print(f"[SETUP] Connection error: {e}")
            time.sleep(poll_interval)
            continue

        if isinstance(result, list) and result:
            if "success" in result[0]:
                return result[0]["success"]["username"]
            error = result[0].get("error", {})
            if error.get("type") != LINK_BUTTON_NOT_PRESSED:
                raise RuntimeError(f"Registration failed: {error.get('description')}")
        time.sleep(poll_interval)

    raise TimeoutError("Bridge button was not pressed in time")


def run_setup_wizard(config: AppConfig, config_path: Path) -> Optional[HueConfig]:
    """
    Interactive setup: pick a bridge, register, save credentials to config.

    Returns the new HueConfig if setup succeeded.
    """
    if config.hue:
        print(f"Found existing credentials for bridge at {config.hue.bridge_ip}")
        response = input("Use existing credentials? [Y/n]: ").strip().lower()
        if response != "n":
            return config.hue

    print("\nSearching for Hue bridges...")
    bridges = discover_bridges()

    if not bridges:
        print("No bridges found. Enter IP manually:")
        bridge_ip = input("Bridge IP: ").strip()
        if not bridge_ip:
            print("No IP provided, aborting.")
            return None
    elif len(bridges) == 1:
        bridge_ip = bridges[0]["ip"]
        print(f"Found bridge: {bridges[0]['name']}")
    else:
        print("\nFound multiple bridges:")
        for i, bridge in enumerate(bridges):
            print(f"  {i + 1}. {bridge['name']}")
        choice = input(f"Select bridge [1-{len(bridges)}]: ").strip()
        try:
            index = int(choice) - 1
            if index < 0:
                raise IndexError(choice)
            bridge_ip = bridges[index]["ip"]
        except (ValueError, IndexError):
            print("Invalid selection, using first bridge")
            bridge_ip = bridges[0]["ip"]

    try:
        username = register(bridge_ip)
    except TimeoutError:
        print("\nSetup timed out. Please try again and press the bridge button.")
        return None
    except RuntimeError as e:
        print(f"\nSetup failed: {e}")
        return None

    config.hue = HueConfig(bridge_ip=bridge_ip, username=username)
    save_config(config, config_path)
    print(f"Credentials saved to {config_path}")
    return config.hue
