"""
Configuration Module for Exam Gen
Centralizes environment variables, model settings, pipeline policy and prompt templates.
"""
import os
from types import MappingProxyType

from dotenv import load_dotenv

# --- API Configuration ---
AI_GATEWAY_URL = os.getenv("AI_GATEWAY_URL", "https://openrouter.ai/api/v1")
AI_GATEWAY_TIMEOUT = 120.0

AI_MODELS = frozenset({
    "xiaomi/mimo-v2-flash:free",
    "nvidia/nemotron-3-nano-30b-a3b:free",
})
DEFAULT_AI_MODEL = "xiaomi/mimo-v2-flash:free"

# Gemini handles PDF text extraction, OpenRouter handles diagrams
PDF_MODEL_NAME = "gemini-2.5-flash"
DIAGRAM_MODEL_NAME = "google/gemini-2.0-flash-exp:free"
MAX_PDF_BYTES = 10 * 1024 * 1024

# --- Pipeline Policy ---
WEAK_SCORE_THRESHOLD = 6
REGENERATION_MAX_ITEMS = 3
REGENERATED_QUALITY_SCORE = 8
PARSE_RETRIES = 0

DEFAULT_MARKS = MappingProxyType({"EASY": 1, "MEDIUM": 2, "HARD": 3})

# Phrases that mean the question refers to a figure
DIAGRAM_TRIGGER_PHRASES = (
    "في الشكل المقابل",
    "في الدائرة الموضحة",
    "الرسم البياني التالي",
    "المخطط",
    "المنحنى",
    "الشكل التالي",
    "كما هو موضح",
    "الشكل أدناه",
    "الدائرة المقابلة",
    "في الصورة",
)

# Arabic single-letter variables -> standard Latin symbols
SYMBOL_GLYPHS = MappingProxyType({
    "ش": "q",  # charge
    "ق": "F",  # force
    "ف": "r",  # distance / radius
    "ك": "m",  # mass
    "ع": "v",  # velocity
    "ج": "a",  # acceleration
    "ز": "t",  # time
})

ERROR_MESSAGES = MappingProxyType({
    "rate_limited": "تم تجاوز الحد الأقصى للطلبات. يرجى المحاولة لاحقاً.",
    "payment_required": "يرجى إضافة رصيد لحساب خدمة الذكاء الاصطناعي.",
    "upstream_error": "حدث خطأ في خدمة الذكاء الاصطناعي. الرجاء المحاولة مرة أخرى.",
    "malformed": "فشل في توليد الأسئلة",
})


def _require_env(*names: str) -> str:
    # Load environment variables fresh (for testing and reload scenarios)
    load_dotenv()
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    raise ValueError(
        f"{names[0]} not found. "
        "Please create a .env file with your API key."
    )


def get_gateway_api_key() -> str:
    """
    Validates and returns the chat-completion gateway API key.

    Raises:
        ValueError: If neither AI_GATEWAY_API_KEY nor OPENROUTER_API_KEY is set.
    """
    return _require_env("AI_GATEWAY_API_KEY", "OPENROUTER_API_KEY")


def get_gemini_api_key() -> str:
    """
    Validates and returns the Gemini API Key used for document extraction.

    Raises:
        ValueError: If GEMINI_API_KEY is not found in environment.
    """
    return _require_env("GEMINI_API_KEY")


# --- Prompt Templates ---
HOUSE_RULES = """قواعد إلزامية:
1. جميع الأسئلة والخيارات باللغة العربية الفصحى
2. كل سؤال يحتوي على 4 خيارات (أ، ب، ج، د) مختلفة تماماً عن بعضها، ولا تكرر أي خيار
3. إجابة واحدة صحيحة فقط لكل سؤال، والخيارات المشتتة معقولة لكن خاطئة بوضوح
4. الشرح يبرر صحة الإجابة بصياغة مستقلة، ولا يذكر "المصدر" أو "الملف" أو "الدرس" أو "المحتوى"
5. لا تستخدم LaTeX أو أي ترميز رياضي مثل \\frac أو $...$
6. الرموز الفيزيائية والكيميائية بالحروف اللاتينية القياسية: q للشحنة، F للقوة، r للمسافة، m للكتلة، v للسرعة، a للتسارع، t للزمن
7. استخدم الأسس والأدلة بصيغة Unicode مثل r² و q₁ و H₂O
8. المخرجات JSON array فقط، كل عنصر يحتوي الحقول: text, optionA, optionB, optionC, optionD, correctOption, difficulty, mark, explanation, needsImage"""

QUESTION_SCHEMA_EXAMPLE = """[
  {{
    "text": "نص السؤال",
    "optionA": "الخيار أ",
    "optionB": "الخيار ب",
    "optionC": "الخيار ج",
    "optionD": "الخيار د",
    "correctOption": "A",
    "difficulty": "EASY",
    "mark": 1,
    "explanation": "شرح مختصر لسبب صحة الإجابة",
    "needsImage": false
  }}
]"""

PROMPT_TEMPLATES = {
    "generator_system": """أنت مساعد تعليمي متخصص في إنشاء أسئلة اختبارات الاختيار من متعدد (MCQ) باللغة العربية.

مهمتك: إنشاء أسئلة اختبار عالية الجودة مبنية على المحتوى المقدم فقط.
- كل سؤال مبني على معلومة موجودة فعلياً في المحتوى
- لا تضف معلومات من خارج المحتوى
- استخدم الأرقام والقيم الموجودة في المحتوى إن وجدت

{house_rules}

توزيع الدرجات حسب الصعوبة:
- سهل (EASY): 1 درجة
- متوسط (MEDIUM): 2 درجة
- صعب (HARD): 3 درجات
{custom_block}
أرجع الأسئلة بصيغة JSON array فقط بدون أي نص إضافي.""",

    "generator_user": """المادة: {subject}
الصف: {grade}
عنوان الاختبار: {title}

{source_block}

{difficulty_clause}

المطلوب: إنشاء {question_count} سؤال اختيار من متعدد.

أرجع JSON array بالصيغة التالية:
""" + QUESTION_SCHEMA_EXAMPLE,

    "regenerator_system": """أنت مساعد تعليمي متخصص في تحسين أسئلة الاختبارات.
اكتب أسئلة جديدة أوضح وأدق تغطي نفس الفكرة وبنفس مستوى الصعوبة.

{house_rules}
{custom_block}""",

    "regenerator_user": """أعد كتابة الأسئلة التالية بجودة أعلى. حسّن الصياغة واكتب خيارات مشتتة أذكى:

{weak_list}

المادة: {subject}
الصف: {grade}
عنوان الاختبار: {title}

أرجع JSON array بنفس الترتيب وبعدد {question_count} عنصر بالصيغة:
""" + QUESTION_SCHEMA_EXAMPLE,

    "pdf_extractor": """استخرج المحتوى النصي من هذا الملف PDF باللغة العربية. اذكر:
1. العناوين والمواضيع الرئيسية
2. المفاهيم والتعريفات المهمة
3. القوانين والمعادلات إن وجدت
4. الأمثلة والتمارين إن وجدت

قدم المحتوى بشكل منظم ومناسب لإنشاء أسئلة اختبار.""",

    "diagram": """Create a simple, clean educational diagram for an Arabic exam question. The diagram should be:
- Simple black lines on pure white background
- Minimalist exam-style illustration
- Suitable for physics, math, or science exams

Labels must use standard Latin symbols only (q, q₁, q₂, F, r, 2r, m, v, a, t, I, V, E, B).
Arabic text is OK only for descriptive labels.

The question context: {question_text}

Style: Clean educational diagram, no decorative elements, suitable for printing on exam paper.""",
}

STRICT_JSON_REMINDER = "تنبيه: أرجع JSON array صالحاً فقط، بدون أي شرح أو نص قبله أو بعده، وبدون علامات ```."


def get_prompt(template_name: str, **kwargs) -> str:
    """
    Retrieves a formatted prompt template.

    Args:
        template_name: Key in PROMPT_TEMPLATES (e.g. "generator_system").
        **kwargs: Variables to format into the template.

    Returns:
        Formatted prompt string.

    Raises:
        KeyError: If template_name is not found in templates.
    """
    if template_name not in PROMPT_TEMPLATES:
        raise KeyError(f"Prompt template '{template_name}' not found.")

    return PROMPT_TEMPLATES[template_name].format(**kwargs)
