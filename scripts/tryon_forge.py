#!/usr/bin/env python3
"""Dress a person photo in a clothing photo (Tryon Forge).

Usage:
  python scripts/tryon_forge.py --person me.jpg --clothing jacket.png
  python scripts/tryon_forge.py --person me.jpg --clothing jacket.png \
    --provider openai --out outputs/tryon_forge

Notes:
- Loads .env from the nearest parent directory that has one.
- Offers to store a missing API key in .env when run from a terminal.
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import os
import sys
import threading
import time
from pathlib import Path

try:
    from dotenv import load_dotenv  # type: ignore
except Exception:  # pragma: no cover
    load_dotenv = None  # type: ignore

from forge_tryon_api import Phase, Slot, SourceFile, build_orchestrator, write_result
from forge_tryon_api.core.contracts import GenerationSession
from forge_tryon_api.core.router import resolve_provider

PROVIDER_CHOICES = ["gemini", "openai", "auto"]

_PHASE_LABELS = {
    Phase.IDLE: "Waiting for images",
    Phase.READY: "Both images ready",
    Phase.GENERATING: "Styling your new look",
    Phase.SUCCEEDED: "Your virtual try-on is ready",
    Phase.FAILED: "Try-on failed",
}


def _find_repo_dotenv() -> Path | None:
    if load_dotenv is None:
        return None
    current = Path(__file__).resolve()
    for parent in (current.parent, *current.parents):
        dotenv_path = parent / ".env"
        if dotenv_path.exists():
            return dotenv_path
    return None


def _load_repo_dotenv() -> Path | None:
    dotenv_path = _find_repo_dotenv()
    if load_dotenv is None:
        return dotenv_path
    if dotenv_path is not None:
        load_dotenv(dotenv_path=dotenv_path, override=False)
        return dotenv_path
    load_dotenv(override=False)
    return None


def _supports_color() -> bool:
    return sys.stdout.isatty()


def _style(text: str, code: str, enabled: bool) -> str:
    if not enabled:
        return text
    return f"\033[{code}m{text}\033[0m"


class _Spinner:
    def __init__(self, message: str, interval: float = 0.1) -> None:
        self.message = message
        self.interval = interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, daemon=True)

    def start(self) -> None:
        if sys.stdout.isatty():
            self._thread.start()

    def stop(self) -> None:
        if not self._thread.is_alive():
            return
        self._stop.set()
        self._thread.join(timeout=1.0)
        sys.stdout.write("\r" + " " * (len(self.message) + 4) + "\r")
        sys.stdout.flush()

    def _run(self) -> None:
        frames = ["|", "/", "-", "\\"]
        index = 0
        while not self._stop.is_set():
            frame = frames[index % len(frames)]
            sys.stdout.write(f"\r{self.message} {frame}")
            sys.stdout.flush()
            time.sleep(self.interval)
            index += 1


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _write_env_key(dotenv_path: Path, key: str, value: str) -> None:
    if not dotenv_path.parent.exists():
        dotenv_path.parent.mkdir(parents=True, exist_ok=True)
    lines: list[str] = []
    if dotenv_path.exists():
        lines = dotenv_path.read_text(encoding="utf-8").splitlines()
    escaped = value.replace("\\", "\\\\").replace("\"", "\\\"")
    new_line = f'{key}="{escaped}"'
    replaced = False
    for idx, line in enumerate(lines):
        if line.strip().startswith(f"{key}="):
            lines[idx] = new_line
            replaced = True
            break
    if not replaced:
        lines.append(new_line)
    dotenv_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    try:
        os.chmod(dotenv_path, 0o600)
    except OSError:
        pass


def _prompt_for_key(key: str, dotenv_path: Path | None) -> bool:
    if not sys.stdin.isatty():
        return False
    choice = input(f"Set {key} now? [y/N]: ").strip().lower()
    if choice not in {"y", "yes"}:
        return False
    value = getpass.getpass(f"Enter {key}: ").strip()
    if not value:
        return False
    if dotenv_path is None:
        dotenv_path = _repo_root() / ".env"
    save = input(f"Save to {dotenv_path}? [Y/n]: ").strip().lower()
    if save in {"", "y", "yes"}:
        _write_env_key(dotenv_path, key, value)
        print(f"Saved {key} to {dotenv_path}.")
    os.environ[key] = value
    return True


def _ensure_api_keys(provider: str, dotenv_path: Path | None) -> None:
    provider = provider.strip().lower()
    if provider == "gemini":
        if os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"):
            return
        if not _prompt_for_key("GEMINI_API_KEY", dotenv_path):
            raise RuntimeError("GEMINI_API_KEY (or GOOGLE_API_KEY) is required for Gemini provider.")
        return
    if provider == "openai":
        if os.getenv("OPENAI_API_KEY") or os.getenv("OPENAI_API_KEY_BACKUP"):
            return
        if not _prompt_for_key("OPENAI_API_KEY", dotenv_path):
            raise RuntimeError("OPENAI_API_KEY is required for OpenAI provider.")
        return


def _describe_session(session: GenerationSession) -> str:
    filled = [slot.value for slot in Slot if session.image_for(slot) is not None]
    label = _PHASE_LABELS[session.phase]
    if session.phase is Phase.IDLE and filled:
        return f"{label} ({', '.join(filled)} loaded)"
    return label


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


async def _run_tryon_async(args: argparse.Namespace, provider: str) -> GenerationSession:
    orchestrator = build_orchestrator(provider=provider, model=args.model, prompt=args.prompt)
    color = _supports_color()
    previous = [orchestrator.session]

    def _report(session: GenerationSession) -> None:
        before, previous[0] = previous[0], session
        for slot, message in session.slot_errors.items():
            if before.slot_errors.get(slot) != message:
                print(_style(f"{slot.value}: {message}", "31", color))
        images_changed = any(session.image_for(slot) is not before.image_for(slot) for slot in Slot)
        if session.phase is not before.phase or images_changed:
            print(_describe_session(session))

    orchestrator.subscribe(_report)
    await asyncio.gather(
        orchestrator.set_image(Slot.PERSON, SourceFile(Path(args.person), args.person_type)),
        orchestrator.set_image(Slot.CLOTHING, SourceFile(Path(args.clothing), args.clothing_type)),
    )
    if orchestrator.session.slot_errors or not orchestrator.session.can_generate:
        return orchestrator.session

    spinner = _Spinner("Styling your new look... this may take a moment")
    spinner.start()
    try:
        return await orchestrator.generate()
    finally:
        spinner.stop()


def _run_tryon(args: argparse.Namespace) -> int:
    dotenv_path = _load_repo_dotenv()
    provider = resolve_provider(args.provider)
    _ensure_api_keys(provider, dotenv_path or _find_repo_dotenv())

    session = asyncio.run(_run_tryon_async(args, provider))
    color = _supports_color()
    if session.phase is not Phase.SUCCEEDED or session.result is None:
        message = session.error_message or "; ".join(session.slot_errors.values()) or "Nothing was generated."
        print(_style(message, "31", color))
        if provider == "gemini":
            print(
                "Tip: Gemini image generation often requires specific model access. "
                "Try --model gemini-2.5-flash-image or gemini-3-pro-image-preview, "
                "or switch to --provider openai."
            )
        return 1

    path = write_result(session.result, out_dir=args.out, provider=provider)
    print(_style(str(path), "32", color))
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description="Tryon Forge: render a person wearing a clothing item.")
    parser.add_argument("--person", required=True, help="Photo of the person")
    parser.add_argument("--clothing", required=True, help="Photo of the clothing item")
    parser.add_argument("--person-type", default=None, help="Override the person image media type")
    parser.add_argument("--clothing-type", default=None, help="Override the clothing image media type")
    parser.add_argument("--provider", default="auto", help=f"Provider name ({', '.join(PROVIDER_CHOICES)})")
    parser.add_argument("--model", default=None, help="Optional model override")
    parser.add_argument("--prompt", default=None, help="Optional instruction prompt override")
    parser.add_argument(
        "--out",
        default="outputs/tryon_forge",
        help="Output directory (default: outputs/tryon_forge)",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    args = parser.parse_args()
    _configure_logging(args.verbose)
    try:
        return _run_tryon(args)
    except KeyboardInterrupt:
        print("\nCancelled.")
        return 1
    except RuntimeError as exc:
        print(f"Try-on failed: {exc}")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
