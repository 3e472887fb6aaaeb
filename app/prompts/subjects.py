"""Subject-specific guidance used by the tutoring and evaluation prompts."""

DEFAULT_SUBJECT_GUIDE = """Subject guide (general):
- Flow: key concept -> worked example or problem -> short summary"""

SUBJECT_GUIDES = {
    "math": """Subject guide (math):
- Explain formulas and calculation steps one at a time
- Write expressions in LaTeX ($...$) and refer to the image's equations or graphs when present
- Point out sign errors, bracket handling and skipped conditions""",
    "english": """Subject guide (English):
- Show the grammar rule together with example sentences
- Example sentences, words and answer choices may be written in English
- Contrast easily confused forms (adjective vs adverb, tense agreement)""",
    "korean": """Subject guide (Korean language):
- Explain grammar rules and literary devices with concrete examples
- Distinguish speaker vs poet, simile vs metaphor, irony vs paradox""",
    "science": """Subject guide (science):
- Connect each law to an everyday situation
- Keep units and experimental conditions explicit""",
    "social": """Subject guide (social studies):
- Connect institutions and events to their period and cause
- Refer to maps, tables and graphs in the image when present""",
}

EVALUATION_RULES = {
    "math": "- Different notations with the same value are equivalent (e.g. $\\frac{1}{2}$ = 0.5, \"a=1, b=-2\" = \"1, -2\")",
    "english": "- Paraphrases with the same meaning are correct; minor grammar slips earn partial credit",
    "korean": "- An answer containing the key term is correct (e.g. \"감각동사\" = \"감각 동사\")",
    "science": "- Equivalent quantities in different units are correct when the conversion is right",
    "social": "- Accept equivalent names for the same institution, person or event",
}

DEFAULT_EVALUATION_RULE = "- Answers with the same meaning are correct regardless of spacing, casing or wording"

DISTRACTOR_STRATEGIES = {
    "math": """- Calculation slips: sign errors, bracket mistakes
- Formula confusion: applying a similar formula
- Dropped conditions: ignoring part of the problem
- Unit errors""",
    "english": """- Grammar confusion (present perfect vs past, linking vs action verbs)
- Part-of-speech confusion (adjective vs adverb, noun vs verb)
- Tense agreement errors
- Similar-sounding or similar-meaning words""",
    "korean": """- Concept confusion (speaker vs poet, point of view)
- Device confusion (simile vs metaphor, paradox vs irony)
- Misreading the context""",
    "science": """- Confusing similar laws or formulas
- Unit conversion errors
- Swapping cause and effect""",
    "social": """- Confusing similar institutions or policies
- Confusing people or events from similar periods""",
}

# Matched as substrings so both "수학" and "Math II" resolve
_SUBJECT_KEYWORDS = (
    ("korean", ("국어", "korean")),
    ("english", ("영어", "english")),
    ("math", ("수학", "math")),
    ("social", ("사회", "역사", "social", "history")),
    ("science", ("과학", "물리", "화학", "생명", "지구", "science", "physics", "chemistry", "biology")),
)


def subject_key(subject: str) -> str:
    """Map a free-form subject label to one of the known subject keys, or ''."""
    label = (subject or "").lower()
    for key, keywords in _SUBJECT_KEYWORDS:
        if any(k in label for k in keywords):
            return key
    return ""


def get_subject_guide(subject: str) -> str:
    return SUBJECT_GUIDES.get(subject_key(subject), DEFAULT_SUBJECT_GUIDE)


def get_evaluation_rules(subject: str) -> str:
    rule = EVALUATION_RULES.get(subject_key(subject))
    if rule:
        return f"{DEFAULT_EVALUATION_RULE}\n{rule}"
    return DEFAULT_EVALUATION_RULE


def get_distractor_strategy(subject: str) -> str:
    return DISTRACTOR_STRATEGIES.get(subject_key(subject), DISTRACTOR_STRATEGIES["math"])
