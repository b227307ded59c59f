"""Shared skill vocabulary used by collectors and scoring."""

import re

from talentscout.utils.text import dedupe_terms

# Recognised in bios, headlines, repo descriptions and snippets
KNOWN_SKILLS = (
    "python", "javascript", "typescript", "java", "c++", "c#", "go", "rust", "php", "ruby",
    "swift", "kotlin", "scala", "react", "vue", "angular", "node.js", "django", "flask",
    "fastapi", "spring", "laravel", "rails", "machine learning", "ml", "ai", "data science",
    "backend", "frontend", "full stack", "fullstack", "devops", "cloud", "aws", "azure", "gcp",
    "docker", "kubernetes", "terraform", "tensorflow", "pytorch", "scikit-learn", "pandas",
    "numpy", "sql", "postgresql", "mongodb", "graphql",
)

# Programming languages GitHub's language: qualifier understands
LANGUAGES = frozenset({
    "python", "javascript", "typescript", "java", "c++", "c#", "go", "rust", "php", "ruby",
    "swift", "kotlin", "scala", "dart", "elixir", "haskell",
})

# Common technology stacks, searched together in bios
TECH_STACKS = (
    ("react", "node.js"),
    ("django", "python"),
    ("spring", "java"),
    ("rails", "ruby"),
    ("laravel", "php"),
    ("vue", "javascript"),
)

# Skill -> Stack Overflow tags
TAG_MAP: dict[str, list[str]] = {
    "javascript": ["javascript", "node.js", "typescript"],
    "python": ["python", "django", "flask", "pandas"],
    "java": ["java", "spring", "spring-boot"],
    "react": ["reactjs", "react-native"],
    "angular": ["angular", "typescript"],
    "vue": ["vue.js"],
    "php": ["php", "laravel", "symfony"],
    "c#": ["c#", ".net", "asp.net"],
    "go": ["go"],
    "rust": ["rust"],
    "swift": ["swift", "ios"],
    "kotlin": ["kotlin", "android"],
    "sql": ["sql", "mysql", "postgresql"],
    "mongodb": ["mongodb", "mongoose"],
    "aws": ["amazon-web-services"],
    "docker": ["docker"],
    "kubernetes": ["kubernetes"],
    "machine learning": ["machine-learning", "tensorflow", "pytorch", "scikit-learn"],
    "data science": ["pandas", "numpy", "matplotlib"],
    "frontend": ["html", "css", "javascript", "reactjs"],
    "backend": ["node.js", "python", "java"],
    "devops": ["docker", "kubernetes", "jenkins"],
    "mobile": ["android", "ios", "react-native", "flutter"],
}

DEFAULT_TAGS = ("javascript", "python", "java", "reactjs")

# Query term -> skills that count as a match for it
SYNONYMS: dict[str, list[str]] = {
    "ai": ["machine learning", "ml", "artificial intelligence", "deep learning", "tensorflow", "pytorch"],
    "machine learning": ["ml", "ai", "deep learning", "tensorflow", "pytorch", "scikit-learn"],
    "backend": ["api", "server", "django", "flask", "spring", "node.js", "fastapi"],
    "frontend": ["react", "vue", "angular", "ui", "css", "html"],
    "devops": ["docker", "kubernetes", "aws", "cloud", "terraform", "ci/cd"],
    "fullstack": ["full stack", "react", "node.js", "django"],
    "full stack": ["fullstack", "react", "node.js", "django"],
    "data science": ["pandas", "numpy", "machine learning", "statistics"],
    "javascript": ["js", "typescript", "node.js"],
    "react": ["reactjs", "react.js", "react-native"],
    "kubernetes": ["k8s"],
    "golang": ["go"],
}

_TAG_RE = re.compile(r"^[a-z0-9#+.\-]+$")


def _skill_pattern(skill: str) -> re.Pattern[str]:
    # Word boundaries do not work around "+" or "#"
    return re.compile(rf"(?<![a-z0-9]){re.escape(skill)}(?![a-z0-9])")


_SKILL_PATTERNS = {skill: _skill_pattern(skill) for skill in KNOWN_SKILLS}


def extract_skills(*texts: str | None) -> list[str]:
    """Find known skills mentioned in free text."""
    blob = " ".join(t for t in texts if t).lower()
    if not blob:
        return []
    return [skill for skill, pattern in _SKILL_PATTERNS.items() if pattern.search(blob)]


def languages_in(terms: list[str]) -> list[str]:
    """Terms that are programming languages, lower-cased."""
    return [t.lower() for t in terms if t.lower() in LANGUAGES]


def matching_stacks(terms: list[str]) -> list[tuple[str, ...]]:
    """Technology stacks with at least one member among ``terms``."""
    lowered = {t.lower() for t in terms}
    return [stack for stack in TECH_STACKS if lowered.intersection(stack)]


def map_skills_to_tags(skills: list[str], limit: int = 10) -> list[str]:
    """Map free-form skills to Stack Overflow tags, defaulting to popular ones."""
    tags: list[str] = []
    for skill in skills:
        key = skill.lower().strip()
        tag = key.replace(" ", "-")
        if _TAG_RE.match(tag):
            tags.append(tag)
        for mapped_key, mapped in TAG_MAP.items():
            # Whole-word containment so "java" does not pull in javascript
            if f" {mapped_key} " in f" {key} ":
                tags.extend(mapped)
    tags = dedupe_terms(tags)
    if not tags:
        tags = list(DEFAULT_TAGS)
    return tags[:limit]


__all__ = [
    "KNOWN_SKILLS",
    "LANGUAGES",
    "TECH_STACKS",
    "TAG_MAP",
    "SYNONYMS",
    "extract_skills",
    "languages_in",
    "matching_stacks",
    "map_skills_to_tags",
]
