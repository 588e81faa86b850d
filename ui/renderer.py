"""
RightCode Buddy terminal UI rendered with Rich.
"""
from __future__ import annotations

from pathlib import Path
from typing import Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text
from rich.theme import Theme

from models.chat_models import ChatMessage
from models.voice_models import Transcript

BUDDY_THEME = Theme({
    "buddy.orange": "bold #F97316",
    "buddy.green":  "bold #16A34A",
    "buddy.dim":    "#6B7280",
    "buddy.user":   "bold white",
    "buddy.error":  "bold red",
    "buddy.link":   "underline cyan",
})

console = Console(theme=BUDDY_THEME, highlight=False)

TAGLINE = "สอบถามปัญหา ปรึกษากับบัดดี้คู่ใจได้ทุกเวลากับ RightCode Buddy เล้ย!"
CREDIT = "พัฒนาโดย: นายธนิท ธนพัตนิรัชกุล ครูผู้ช่วย โรงเรียนกาฬสินธุ์ปัญญานุกูล จังหวัดกาฬสินธุ์"


def print_header():
    console.print(Panel(
        Text.assemble(("RightCode", "buddy.orange"), ("Buddy", "buddy.green"), "\n", (TAGLINE, "buddy.dim")),
        box=box.ROUNDED,
        border_style="#16A34A",
    ))


def print_footer():
    console.print(f"[buddy.dim]{CREDIT}[/]")


def print_home_menu():
    console.print("[buddy.green][1] Chat Mode[/]  [buddy.dim]พิมพ์คุย, ค้นหาข้อมูล, และสร้างภาพกับ AI[/]")
    console.print("[buddy.orange][2] Voice Mode[/] [buddy.dim]สนทนาโต้ตอบด้วยเสียงแบบเรียลไทม์[/]")
    console.print("[buddy.dim]\\[q] ออก[/]")


def print_chat_intro():
    console.print(Panel(
        "เริ่มต้นการสนทนาได้เลย!\n"
        "[buddy.dim]ลองถามคำถาม, อัปโหลดรูป, หรือสั่ง \"วาดรูปแมวอวกาศ\"[/]\n"
        "[buddy.dim]/image <ไฟล์>  แนบรูป · /remove  ลบรูป · /clear  ล้างข้อความ · /mic [วินาที]  พิมพ์ด้วยเสียง · /back  กลับ[/]",
        box=box.ROUNDED,
        border_style="#16A34A",
    ))


def print_chat_message(message: ChatMessage, saved_image: Optional[Path] = None):
    """Render one chat turn; `saved_image` is where a generated image was written."""
    if message.role == "user":
        label = Text("คุณ", style="buddy.user")
        body = escape(message.text or "")
        if message.image_url:
            body = f"{body}\n{escape(f'[รูปแนบ: {message.image_url}]')}".strip()
        console.print(Panel(body, title=label, title_align="right", border_style="#F97316", box=box.ROUNDED))
        return

    lines = []
    if message.text:
        lines.append(escape(message.text))
    if message.image_url:
        lines.append(f"🖼  บันทึกรูปไว้ที่ {saved_image}" if saved_image else "🖼  ได้รับรูปภาพ")
    if message.sources:
        lines.append("")
        lines.append("แหล่งข้อมูล:")
        for source in message.sources:
            title = source.title or source.uri or "-"
            lines.append(escape(f"  • {title}: {source.uri or ''}"))
    console.print(Panel("\n".join(lines), title="RightCode Buddy", title_align="left",
                        border_style="#16A34A", box=box.ROUNDED))


def print_pending_draft(draft: str):
    """Show a message that was put back after a failed send."""
    label = escape(draft) if draft else "(รูปแนบ)"
    console.print(f"[buddy.dim]ยังไม่ได้ส่ง:[/] {label}")
    console.print("[buddy.dim]กด Enter เพื่อส่งอีกครั้ง · พิมพ์ข้อความใหม่เพื่อแทนที่ · /clear เพื่อลบ[/]")


def print_typing():
    console.print("[buddy.dim]กำลังพิมพ์...[/]")


def print_transcript(transcript: Transcript):
    if transcript.speaker == "user":
        console.print(f"[buddy.dim]คุณพูดว่า[/]\n[buddy.orange]{escape(transcript.text)}[/]")
    else:
        console.print(f"[buddy.dim]RightCode Buddy ตอบว่า[/]\n[buddy.green]{escape(transcript.text)}[/]")


def print_status(message: str, talking: bool = False):
    marker = "🔊 " if talking else ""
    console.print(f"[buddy.dim]{marker}{escape(message)}[/]")


def print_error(message: str):
    console.print(f"[buddy.error]✗ {escape(message)}[/]")
