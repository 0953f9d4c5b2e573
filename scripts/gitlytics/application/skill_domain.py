from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Sequence

from gitlytics.domain.entities import DomainInference

GENERALIST = "Generalist"
MIN_DOMAIN_SCORE = 2


@dataclass(frozen=True)
class DomainProfile:
    languages: tuple[str, ...]
    topics:    tuple[str, ...]
    weight:    float


# Specialised domains weigh more; web development is common, so it weighs least.
DOMAIN_MAP: dict[str, DomainProfile] = {
    "Systems Programming": DomainProfile(
        languages = ("C", "C++", "Rust", "Assembly", "Zig"),
        topics    = ("linux", "kernel", "operating-system", "embedded", "systems", "compiler", "low-level"),
        weight    = 3,
    ),
    "AI/ML": DomainProfile(
        languages = ("Python",),
        topics    = ("tensorflow", "pytorch", "scikit-learn", "machine-learning",
                     "deep-learning", "neural-network", "ai", "ml"),
        weight    = 3,
    ),
    "Data Science": DomainProfile(
        languages = ("Python", "R", "Julia"),
        topics    = ("pandas", "numpy", "matplotlib", "jupyter", "data-science", "analytics", "visualization"),
        weight    = 2.5,
    ),
    "Mobile Development": DomainProfile(
        languages = ("Kotlin", "Swift", "Dart", "Objective-C"),
        topics    = ("android", "ios", "flutter", "react-native", "mobile"),
        weight    = 2.5,
    ),
    "Game Development": DomainProfile(
        languages = ("C++", "C#", "GDScript"),
        topics    = ("unity", "unreal", "godot", "game", "gamedev", "gaming"),
        weight    = 2.5,
    ),
    "DevOps/Infrastructure": DomainProfile(
        languages = ("Shell", "Python", "Go", "HCL"),
        topics    = ("docker", "kubernetes", "ci", "cd", "github-actions", "terraform",
                     "ansible", "devops", "infrastructure"),
        weight    = 2,
    ),
    "Blockchain/Web3": DomainProfile(
        languages = ("Solidity", "Rust", "Go"),
        topics    = ("blockchain", "ethereum", "web3", "smart-contract", "cryptocurrency", "defi"),
        weight    = 2.5,
    ),
    "Backend Development": DomainProfile(
        languages = ("Go", "Java", "Python", "Ruby", "PHP", "Elixir"),
        topics    = ("api", "backend", "server", "microservices", "database", "graphql", "rest"),
        weight    = 1.5,
    ),
    "Web Development": DomainProfile(
        languages = ("JavaScript", "TypeScript", "HTML", "CSS"),
        topics    = ("react", "vue", "angular", "nextjs", "svelte", "tailwindcss", "frontend", "web"),
        weight    = 1,
    ),
}


def infer_domain(
    language_percentages: Sequence[tuple[str, float]],
    top_topics: Iterable[str],
) -> DomainInference:
    """
    Score every domain from language share and topic overlap.

    A language contributes (percent / 10) * weight, each matching topic
    contributes weight. The best domain wins only above MIN_DOMAIN_SCORE;
    otherwise the account is a generalist.
    """
    percents = dict(language_percentages)
    topic_set = set(top_topics)

    scores: dict[str, float] = {}
    for domain, profile in DOMAIN_MAP.items():
        score = sum(percents[lang] / 10 * profile.weight for lang in profile.languages if lang in percents)
        score += sum(1 for t in profile.topics if t in topic_set) * profile.weight
        scores[domain] = score

    best = max(scores.items(), key=lambda kv: kv[1], default=None)
    domain = best[0] if best is not None and best[1] > MIN_DOMAIN_SCORE else GENERALIST
    return DomainInference(domain=domain, scores=scores)
