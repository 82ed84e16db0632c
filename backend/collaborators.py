# collaborators.py — Peer status probe and document scanner behind narrow interfaces
"""
The task board shows two read-only panels that depend on the host machine:
the status of peer agent processes and the catalogue of brain documents.
Both are injected so that tests and alternative deployments can swap them.

Probing is best-effort. A peer whose config cannot be read or whose port does
not answer is reported as ``offline`` with model ``"?"``; nothing here raises.
"""
import os
import json
import asyncio
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

logger = logging.getLogger("taskboard.collaborators")

PEERS_FILE = os.getenv("TASKBOARD_PEERS_FILE", "")
PROBE_TIMEOUT_SECONDS = 2.0


class PeerStatusProber(Protocol):
    async def probe(self) -> List[Dict[str, Any]]: ...


class DocumentScanner(Protocol):
    async def scan(self) -> List[Dict[str, Any]]: ...

    async def get(self, doc_type: str, slug: str) -> Optional[str]: ...


def _read_json(path: Path) -> Optional[dict]:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        logger.debug(f"Could not read {path}: {e}")
        return None
    return data if isinstance(data, dict) else None


def _dig(data: dict, *keys: str) -> dict:
    """Follow nested object keys, yielding {} wherever a level is missing or not an object."""
    for key in keys:
        data = data.get(key)
        if not isinstance(data, dict):
            return {}
    return data


class ConfiguredPeerProber:
    """Probes the peers listed in a JSON file.

    Each peer entry: ``{"name", "port", "emoji"?, "configDir"?, "workspace"?,
    "host"?}``. The model configuration is read from
    ``<configDir>/clawdbot.json`` under ``agents.defaults.model``.
    """

    def __init__(self, peers: Optional[List[Dict[str, Any]]] = None, timeout: float = PROBE_TIMEOUT_SECONDS):
        self.peers = []
        for peer in peers or []:
            if isinstance(peer, dict):
                self.peers.append(peer)
            else:
                logger.warning(f"Ignoring peer entry {peer!r}: expected an object")
        self.timeout = timeout

    @classmethod
    def from_file(cls, path: str) -> "ConfiguredPeerProber":
        if not path:
            return cls([])
        data = _read_json(Path(path).expanduser())
        peers = (data or {}).get("peers", [])
        if not isinstance(peers, list):
            logger.warning(f"Peers file {path} has no 'peers' list; probing nothing")
            peers = []
        return cls(peers)

    async def _port_open(self, host: str, port: int) -> bool:
        try:
            _, writer = await asyncio.wait_for(asyncio.open_connection(host, port), timeout=self.timeout)
        except (OSError, OverflowError, ValueError, asyncio.TimeoutError) as e:
            logger.debug(f"Port {host}:{port} closed: {e}")
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    async def _probe_one(self, peer: Dict[str, Any]) -> Dict[str, Any]:
        info = {
            "name": peer.get("name"),
            "emoji": peer.get("emoji"),
            "port": peer.get("port"),
            "status": "unknown",
            "model": "?",
            "fallbacks": [],
            "workspace": peer.get("workspace"),
        }
        config_dir = peer.get("configDir")
        if isinstance(config_dir, str) and config_dir:
            config = await asyncio.to_thread(_read_json, Path(config_dir).expanduser() / "clawdbot.json")
            if config:
                model = _dig(config, "agents", "defaults", "model")
                info["model"] = model.get("primary") or "?"
                info["fallbacks"] = model.get("fallbacks") or []
                info["cronModel"] = _dig(config, "cron").get("model") or "default"

        port = peer.get("port")
        if isinstance(port, int):
            host = peer.get("host")
            online = await self._port_open(host if isinstance(host, str) else "127.0.0.1", port)
            info["status"] = "online" if online else "offline"
        else:
            info["status"] = "offline"
        return info

    async def probe(self) -> List[Dict[str, Any]]:
        return list(await asyncio.gather(*(self._probe_one(p) for p in self.peers)))


class NullDocumentScanner:
    """Scanner used when no document tree is mounted."""

    async def scan(self) -> List[Dict[str, Any]]:
        return []

    async def get(self, doc_type: str, slug: str) -> Optional[str]:
        return None


def default_prober() -> ConfiguredPeerProber:
    return ConfiguredPeerProber.from_file(PEERS_FILE)
