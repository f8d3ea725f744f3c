"""Prompt templates and canned replies for the Mediverse assistant.

Three prompts reach the text-completion service:

  - ``INTENT_PROMPT_TEMPLATE`` : yes/no "does the user want a doctor?"
  - ``NURSE_PROMPT_TEMPLATE``  : generic AI-nurse chat
  - ``DOCTOR_PROMPT_TEMPLATE`` : chat in the persona of the assigned doctor

The handoff confirmation, handoff announcement and decline messages are
fixed strings and never go through the model.
"""

from __future__ import annotations

from src.config import CHAT_HISTORY_MESSAGES
from src.models import Doctor, Message, Role

INTENT_PROMPT_TEMPLATE = """Bạn là một bộ phân loại ngôn ngữ.
Nhiệm vụ: xác định xem người dùng có MUỐN gặp bác sĩ hay không.

- Nếu người dùng MUỐN gặp bác sĩ, trả về đúng một từ: yes
- Nếu người dùng KHÔNG MUỐN, không nhắc tới, hoặc phủ định, trả về đúng một từ: no
- Không giải thích thêm.

Câu của người dùng: "{text}"
"""

NURSE_PROMPT_TEMPLATE = """Bạn là Mediverse, một y tá có kiến thức y khoa cơ bản.
- Tư vấn sức khỏe cơ bản bằng ngôn ngữ mà người dùng đang dùng.
- Không thay thế chẩn đoán của bác sĩ.
- Trả lời ngắn gọn, dễ hiểu.
- Dùng giọng văn thân thiện, tích cực, dễ gần.
{history}
Tin nhắn mới nhất từ người dùng: "{message}"
"""

DOCTOR_PROMPT_TEMPLATE = """Bạn là {name}, bác sĩ chuyên khoa {specialty}, đang tư vấn cho bệnh nhân.
- Chuyên môn của bạn ở mức vừa phải, không đi khám sâu.
- Trả lời thân thiện, dễ hiểu, bằng ngôn ngữ mà bệnh nhân đang dùng, giọng văn phù hợp bác sĩ.
- Không đưa ra chẩn đoán chắc chắn, chỉ gợi ý và khuyên bệnh nhân đi khám trực tiếp nếu cần.
{history}
Tin nhắn mới nhất từ bệnh nhân: "{message}"
"""

HANDOFF_CONFIRMATION_TEMPLATE = (
    "Bạn có muốn chuyển tiếp sang bác sĩ {specialty} ({name}) "
    "để được tư vấn không? (Có / Không)"
)
HANDOFF_ACCEPTED_TEMPLATE = (
    "✅ Bạn đã được chuyển sang mục chat với bác sĩ {specialty} ({name})."
)
HANDOFF_DECLINED_MESSAGE = "❌ Bạn đã từ chối chuyển sang bác sĩ. Tiếp tục chat với AI."

# Stored in place of an empty model reply
NO_REPLY_PLACEHOLDER = "(Không có phản hồi)"

_HISTORY_ENTRY_MAX_CHARS = 500


def format_history(
    messages: list[Message],
    *,
    user_label: str,
    assistant_label: str,
    max_messages: int = CHAT_HISTORY_MESSAGES,
) -> str:
    """Render the recent transcript for inclusion in a prompt.

    The last message is the one being answered and is passed to the
    template separately, so it is left out here.  Returns an empty string
    when there is no earlier context (or ``max_messages`` is 0).
    """
    if max_messages <= 0 or len(messages) < 2:
        return ""

    earlier = messages[:-1][-max_messages:]
    lines = ["", "Đoạn hội thoại gần đây:"]
    for msg in earlier:
        label = user_label if msg.role == Role.USER else assistant_label
        lines.append(f"  {label}: {msg.content[:_HISTORY_ENTRY_MAX_CHARS]}")
    lines.append("")
    return "\n".join(lines)


def build_intent_prompt(text: str) -> str:
    return INTENT_PROMPT_TEMPLATE.format(text=text)


def build_nurse_prompt(messages: list[Message], message: str) -> str:
    history = format_history(messages, user_label="Người dùng", assistant_label="Mediverse")
    return NURSE_PROMPT_TEMPLATE.format(history=history, message=message)


def build_doctor_prompt(doctor: Doctor, messages: list[Message], message: str) -> str:
    history = format_history(messages, user_label="Bệnh nhân", assistant_label=doctor.name)
    return DOCTOR_PROMPT_TEMPLATE.format(
        name=doctor.name,
        specialty=doctor.specialty,
        history=history,
        message=message,
    )


def handoff_confirmation(doctor: Doctor) -> str:
    return HANDOFF_CONFIRMATION_TEMPLATE.format(specialty=doctor.specialty, name=doctor.name)


def handoff_accepted(doctor: Doctor) -> str:
    return HANDOFF_ACCEPTED_TEMPLATE.format(specialty=doctor.specialty, name=doctor.name)
