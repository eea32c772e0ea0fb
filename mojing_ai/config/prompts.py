"""
墨境 프롬프트 모음
- 작업 생성 / 작업 평가 / 주간 장문 평가
"""
from typing import Dict, List, Optional, Sequence

SKILL_CATEGORY_DEFINITIONS: Dict[str, str] = {
    "character": "characterization: appearance, psychology, telling details",
    "conflict": "conflict design: dilemmas, opposition, tension",
    "scene": "scene building: environment, atmosphere, senses",
    "dialogue": "dialogue: lines, subtext, voice revealing personality",
    "rhythm": "pacing: narrative speed, fast/slow control, white space",
    "style": "style: diction, rhetoric, imagery",
}

_SYSTEM_PROMPTS = {
    "task_generation": (
        "You are a writing-training expert who designs short, concrete writing exercises. "
        "Always answer with a single JSON object and nothing else."
    ),
    "task_evaluation": (
        "You are a writing mentor reviewing a student's exercise. "
        "Be specific and encouraging. Always answer with a single JSON object and nothing else."
    ),
    "weekly_evaluation": (
        "You are a writing mentor reviewing a long-form weekly piece. "
        "Judge structure and sustained craft. Always answer with a single JSON object and nothing else."
    ),
}


def get_prompt(name: str) -> str:
    return _SYSTEM_PROMPTS[name]


def build_task_generation_prompt(
    *,
    kind_label: str,
    count: int,
    time_limit_text: str,
    word_limit_text: str,
    samples: Sequence[Dict[str, str]],
    focus_categories: Sequence[str],
    constraint_tokens: Sequence[str],
    prompt_kinds: Sequence[str],
    nonce: str,
) -> str:
    sample_lines = "\n".join(
        f"{i + 1}. [{s['title']}] {s['description']} (trains: {s['skill_category']})"
        for i, s in enumerate(samples)
    ) or "(none)"
    category_lines = "\n".join(f"- {k}: {v}" for k, v in SKILL_CATEGORY_DEFINITIONS.items())
    focus = ", ".join(focus_categories)
    tokens = ", ".join(f'"{t}"' for t in constraint_tokens)
    slot_lines = "\n".join(
        f'- #{i + 1}: prompt_kind={k}, constraint_word="{constraint_tokens[i]}"'
        for i, k in enumerate(prompt_kinds)
    )

    return f"""Generate {count} new "{kind_label}" writing tasks for a writing learner.

{kind_label} characteristics:
- Time limit: {time_limit_text}
- Length: {word_limit_text}
- Goal: train one specific writing skill

Reference samples:
{sample_lines}

The six skill categories:
{category_lines}

Requirements:
1. Titles must be specific and actionable.
2. Do not repeat the reference samples.
3. Prioritise these skill categories this time: {focus} (spread the tasks evenly if there are fewer tasks than categories).
4. Be creative and make the learner want to write.
5. To avoid repetition, every task description MUST contain its own distinct constraint word (never omitted, never reused): {tokens}
6. Do not reuse title phrases from the samples; vary settings, relationships and narrative angles.
7. Random seed: {nonce}

The prompt_kind of each task was rolled by the system; follow it exactly:
- normal: a regular writing exercise
- polish: give a very dry logical outline for the learner to polish into full prose
- continue: give an opening passage for the learner to continue

Slot assignments (one task per slot, in order):
{slot_lines}

Return a JSON object of the form {{"tasks": [...]}} where each task has: title, description, attr_type, difficulty (easy/normal/hard), prompt_kind. attr_type must be one of [{focus}] and prompt_kind must match the slot assignment."""


def build_task_evaluation_prompt(
    *,
    kind_label: str,
    title: str,
    description: str,
    requirements: Optional[str],
    skill_category: str,
    content: str,
) -> str:
    requirement_line = f"Special requirements: {requirements}\n" if requirements else ""
    return f"""Review the student's {kind_label} task.

Task:
Title: {title}
Description: {description}
{requirement_line}Skill trained: {skill_category}

Student's work:
{content}

Score these dimensions (10 points each):
1. completion - did the work fulfil the task
2. technique - use of the target skill
3. creativity - originality and appeal
4. expression - fluency and expressiveness
5. detail - precision and vividness of detail

Return JSON:
{{
  "score": overall score (0-100),
  "dimensions": {{
    "completion": {{"score": 0-10, "comment": "..."}},
    "technique": {{"score": 0-10, "comment": "..."}},
    "creativity": {{"score": 0-10, "comment": "..."}},
    "expression": {{"score": 0-10, "comment": "..."}},
    "detail": {{"score": 0-10, "comment": "..."}}
  }},
  "highlights": ["...", "..."],
  "improvements": ["...", "..."],
  "overall": "2-3 sentence overall comment"
}}"""


def build_weekly_evaluation_prompt(
    *,
    title: str,
    theme: str,
    description: str,
    requirements: Optional[str],
    content: str,
    word_count: int,
) -> str:
    requirement_line = f"Special requirements: {requirements}\n" if requirements else ""
    return f"""Review this week's long-form inkchapter piece.

Challenge: {title}
Theme: {theme}
Brief: {description}
{requirement_line}Length submitted: {word_count}

Student's work:
{content}

Use the same JSON shape as a task review:
{{"score": 0-100, "dimensions": {{"completion": {{"score": 0-10, "comment": "..."}}, "technique": {{...}}, "creativity": {{...}}, "expression": {{...}}, "detail": {{...}}}}, "highlights": [...], "improvements": [...], "overall": "..."}}"""


def as_messages(system_name: str, prompt: str) -> List[Dict[str, str]]:
    return [
        {"role": "system", "content": get_prompt(system_name)},
        {"role": "user", "content": prompt},
    ]
