import re
from collections import Counter
from functools import lru_cache
from typing import Callable

from langchain_core.language_models import BaseLanguageModel
from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import PromptTemplate
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_ollama import OllamaLLM
from loguru import logger

from ..remote.parse_messages import html_to_text
from ..settings import LLMSettings, Settings

Summarizer = Callable[[str], str]

_SENTENCE = re.compile(r"[^.!?\n]+[.!?]?")
_WORD = re.compile(r"[a-z0-9']+")
_MARKUP = re.compile(r"<[a-zA-Z/!][^>]*>")

parser = StrOutputParser()
prompt = PromptTemplate.from_template(
    "Summarize the following email in 2-3 concise sentences.\n"
    "Return ONLY the summary text, without any introductory or concluding phrases.\n\n"
    "Email:\n{email}\n\nSummary:"
)


@lru_cache(maxsize=None)
def _model(provider: str) -> BaseLanguageModel:
    llm_settings = LLMSettings()
    if provider == "gemini":
        return ChatGoogleGenerativeAI(model=llm_settings.gemini_model)

    return OllamaLLM(model=llm_settings.summary_model)


def extractive_summary(text: str, top_sentences: int = 2, max_chars: int = 300) -> str:
    """Pick the sentences with the most frequent words and keep them in reading order."""
    text = text.strip()
    if not text:
        return ""

    sentences = [s.strip() for s in _SENTENCE.findall(text) if s.strip()]
    if not sentences:
        return text[:max_chars]

    frequency = Counter(
        word
        for sentence in sentences
        for word in _WORD.findall(sentence.lower())
        if len(word) > 2
    )
    if not frequency:
        return " ".join(sentences)[:max_chars]

    def score(sentence: str) -> float:
        words = _WORD.findall(sentence.lower())
        return sum(frequency[w] for w in words) / len(words) if words else 0.0

    ranked = sorted(range(len(sentences)), key=lambda i: score(sentences[i]), reverse=True)
    chosen = sorted(ranked[:top_sentences])

    parts: list[str] = []
    length = 0
    for index in chosen:
        sentence = sentences[index]
        if parts and length + len(sentence) > max_chars:
            break
        parts.append(sentence)
        length += len(sentence)
    return " ".join(parts)[:max_chars].strip()


def generate_summary_with_llm(text: str, settings: Settings) -> str:
    chain = prompt | _model(settings.llm_provider) | parser
    return chain.invoke({"email": text}).strip(' "')


def create_summarizer(settings: Settings) -> Summarizer:
    """Summarizer for the configured provider; falls back to the extractive one on failure."""

    def summarize(text: str) -> str:
        if _MARKUP.search(text):
            text = html_to_text(text)
        if not text.strip():
            return ""
        if settings.llm_provider == "extractive":
            return extractive_summary(text)
        try:
            summary = generate_summary_with_llm(text, settings)
        except Exception as e:
            logger.warning(f"{settings.llm_provider} summary failed, falling back: {e}")
            return extractive_summary(text)
        return summary or extractive_summary(text)

    return summarize
