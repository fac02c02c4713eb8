"""Prompt assembly for the paper-explaining dialogue.

The template lives in ``prompts/murasame.txt``; two independent fragments
chosen by ``AnalysisSettings`` are substituted into it.
"""

from __future__ import annotations

from pathlib import Path

from .models import AnalysisSettings

_PROMPTS_DIR = Path(__file__).resolve().parent / "prompts"
_TEMPLATE = (_PROMPTS_DIR / "murasame.txt").read_text(encoding="utf-8").strip()

_EMOTION_CHOICES = "normal/happy/angry/surprised/shy/proud"

DETAIL_INSTRUCTIONS = {
    "brief": "讲解要简明扼要，重点突出，适合快速阅读，15轮左右。",
    "detailed": "讲解要极其细致，对话回合数至少要25轮以上。不要略过任何技术细节，尤其是方法论和实验部分。",
    "academic": "讲解要专业且有深度，使用专业术语但随后进行解释，重点分析论文的创新点和不足，对话长度30轮左右。",
}

PERSONALITY_INSTRUCTIONS = {
    "tsundere": '语气要非常傲娇。虽然很嫌弃主殿（用户）看不懂，但还是很用心地解释。多用"真拿你没办法"、"笨蛋主殿"等词汇。',
    "gentle": '语气要非常温柔，像大姐姐一样。多鼓励主殿，"没关系，慢慢来"、"主殿真棒"。',
    "strict": "语气要严厉，像魔鬼教官。要求主殿必须跟上思路，不许偷懒。",
}


def build_prompt(settings: AnalysisSettings) -> str:
    """Return the full instruction text for *settings*."""
    return _TEMPLATE.format(
        detail_instruction=DETAIL_INSTRUCTIONS[settings.detail_level],
        personality_instruction=PERSONALITY_INSTRUCTIONS[settings.personality],
        emotions=_EMOTION_CHOICES,
    )
