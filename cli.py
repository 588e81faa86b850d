#!/usr/bin/env python3
"""
RightCode Buddy: terminal client and relay launcher
Usage: rightcode-buddy [home|chat|voice|serve] [--output DIR]
"""
from __future__ import annotations

import argparse
import asyncio
import logging
from pathlib import Path

import httpx
import uvicorn
from google import genai
from rich.markup import escape

from services.chat_exchange import ChatExchange
from services.image_attachment import save_data_url
from services.realtime.audio_codec import CAPTURE_SAMPLE_RATE, float_to_pcm16, pcm16_to_wav
from services.realtime.audio_devices import record_clip
from services.realtime.errors import MicrophoneUnavailableError, SessionBusyError
from services.realtime.live_connector import GeminiLiveConnector
from services.realtime.voice_session import MICROPHONE_DENIED_STATUS, VoiceSession
from ui.renderer import (
    console, print_chat_intro, print_chat_message, print_error, print_footer,
    print_header, print_home_menu, print_pending_draft, print_status, print_transcript, print_typing,
)
from utils.config import Settings
from utils.logging_config import configure_logging

logger = logging.getLogger(__name__)

DEFAULT_DICTATION_SECONDS = 5.0


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        prog="rightcode-buddy",
        description="RightCode Buddy, a Thai-first chat and voice assistant"
    )
    p.add_argument("mode", nargs="?", default="home", choices=["home", "chat", "voice", "serve"],
                   help="Screen to open, or 'serve' to run the relay (default: home)")
    p.add_argument("--output", "-o", default="buddy-images",
                   help="Directory for generated images (default: ./buddy-images)")
    return p.parse_args(argv)


async def _prompt(label: str) -> str:
    return await asyncio.to_thread(console.input, label)


async def _dictate(exchange: ChatExchange, arg: str) -> None:
    try:
        seconds = float(arg) if arg else DEFAULT_DICTATION_SECONDS
    except ValueError:
        print_error("ระบุจำนวนวินาทีเป็นตัวเลข")
        return
    print_status(f"กำลังฟัง {seconds:g} วินาที...")
    try:
        samples = await asyncio.to_thread(record_clip, seconds)
    except MicrophoneUnavailableError as exc:
        logger.error("Dictation recording failed: %s", exc)
        print_error("กรุณาอนุญาตให้แอปเข้าถึงไมโครโฟนของคุณ")
        return
    wav = pcm16_to_wav(float_to_pcm16(samples), CAPTURE_SAMPLE_RATE)
    try:
        transcript = await exchange.dictate(wav)
    except httpx.HTTPError as exc:
        logger.error("Dictation failed: %s", exc)
        print_error("ขออภัยค่ะ ถอดเสียงไม่สำเร็จ")
        return
    if transcript:
        console.print(f"[buddy.dim]ข้อความ:[/] {escape(exchange.draft)}")
    else:
        print_status("ไม่ได้ยินเสียงพูดค่ะ")


def compose_draft(draft: str, line: str) -> str:
    """Return the text to send: a blank line resends the pending draft, typed text replaces it."""
    return line.strip() if line.strip() else draft


async def run_chat(settings: Settings, output_dir: Path) -> None:
    print_chat_intro()
    async with ChatExchange(settings.backend_url, timeout=settings.chat_timeout) as exchange:
        while True:
            attached = f" [รูป: {Path(exchange.attachment.source).name}]" if exchange.attachment else ""
            try:
                line = await _prompt(f"[buddy.user]พิมพ์ข้อความหรือแนบรูป{attached} › [/]")
            except EOFError:
                return
            command, _, arg = line.strip().partition(" ")
            if command == "/back":
                return
            if command == "/image":
                try:
                    exchange.attach_image(arg.strip())
                except ValueError as exc:
                    print_error(str(exc))
                continue
            if command == "/remove":
                exchange.remove_image()
                continue
            if command == "/clear":
                exchange.draft = ""
                exchange.remove_image()
                continue
            if command == "/mic":
                await _dictate(exchange, arg.strip())
                continue

            exchange.draft = compose_draft(exchange.draft, line)
            if not exchange.can_send:
                continue
            history_size = len(exchange.messages)
            print_typing()
            await exchange.send()
            for message in exchange.messages[history_size:]:
                saved = None
                if message.role == "model" and message.image_url:
                    try:
                        saved = save_data_url(message.image_url, output_dir)
                    except (ValueError, OSError) as exc:
                        print_error(f"บันทึกรูปไม่สำเร็จ: {exc}")
                if message.role == "model":
                    print_chat_message(message, saved)
            if exchange.draft or exchange.attachment:
                print_pending_draft(exchange.draft)


class _VoicePrinter:
    """Print new transcripts and status changes as the session updates."""

    def __init__(self) -> None:
        self.printed = 0
        self.last_status = None
        self.last_talking = False

    def __call__(self, session: VoiceSession) -> None:
        if len(session.transcripts) < self.printed:
            self.printed = 0
        for transcript in session.transcripts[self.printed:]:
            print_transcript(transcript)
        self.printed = len(session.transcripts)
        if session.status_message != self.last_status or session.is_ai_talking != self.last_talking:
            self.last_status = session.status_message
            self.last_talking = session.is_ai_talking
            print_status(session.status_message, talking=session.is_ai_talking)


async def run_voice(settings: Settings) -> None:
    if not settings.api_key:
        print_error("GEMINI_API_KEY is not set")
        return

    client = genai.Client(api_key=settings.api_key)
    connector = GeminiLiveConnector(client, model=settings.live_model, voice_name=settings.live_voice)
    async with VoiceSession(connector, on_update=_VoicePrinter()) as session:
        print_status(session.status_message)
        while True:
            label = "เสร็จสิ้น" if session.is_session_active else "กดเพื่อพูด"
            try:
                answer = await _prompt(f"[Enter] {label} · /back กลับ › ")
            except EOFError:
                return
            if answer.strip() == "/back":
                return
            if session.is_session_active:
                await session.stop()
                continue
            try:
                started = await session.start()
            except SessionBusyError as exc:
                print_error(str(exc))
                continue
            if not started and session.status_message == MICROPHONE_DENIED_STATUS:
                print_error(MICROPHONE_DENIED_STATUS)


async def run_home(settings: Settings, output_dir: Path) -> None:
    while True:
        print_home_menu()
        try:
            choice = (await _prompt("› ")).strip().lower()
        except EOFError:
            return
        if choice in ("1", "chat"):
            await run_chat(settings, output_dir)
        elif choice in ("2", "voice"):
            await run_voice(settings)
        elif choice in ("q", "quit", "exit"):
            return


def serve(settings: Settings) -> None:
    uvicorn.run("main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


def main(argv=None) -> None:
    args = parse_args(argv)
    settings = Settings.from_env()
    configure_logging(settings.log_level)

    if args.mode == "serve":
        serve(settings)
        return

    print_header()
    output_dir = Path(args.output)
    try:
        if args.mode == "chat":
            asyncio.run(run_chat(settings, output_dir))
        elif args.mode == "voice":
            asyncio.run(run_voice(settings))
        else:
            asyncio.run(run_home(settings, output_dir))
    except KeyboardInterrupt:
        pass
    print_footer()


if __name__ == "__main__":
    main()
