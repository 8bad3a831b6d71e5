"""Naive Bayes model, trainer, and document categorizer.

The model is a multinomial Naive Bayes over raw token counts:

- ``label_counts[l]``: number of training documents with label ``l``
- ``token_counts[t][l]``: occurrences of token ``t`` in documents labelled ``l``

Scoring works in log space with Laplace smoothing::

    log P(l)     = log((n_l + alpha) / (N + alpha * L))
    log P(t | l) = log((c_tl + alpha) / (T_l + alpha * V))

Tokens outside the model vocabulary are neutral and skipped. Posteriors are
normalized with log-sum-exp. Scoring an empty token list yields the label
priors.

Models are immutable. ``NaiveBayesTrainer`` always returns a new model, so
a categorizer can keep scoring with its loaded model while a retrained one
is written to disk.
"""

from __future__ import annotations

import math
from collections import Counter
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Iterable, Mapping, Optional, Sequence

from .config import LABELS, LANGUAGE_CODE, ClassifierConfig
from .exceptions import CorruptModelError
from .models import ClassificationResult

if TYPE_CHECKING:
    from .store import ModelStore


# ---------------------------------------------------------------------------
# Model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class NaiveBayesModel:
    """Trained Naive Bayes parameters.

    Attributes:
        labels: Ordered label set. Index ``i`` of every count tuple refers
            to ``labels[i]``.
        label_counts: Training documents per label.
        token_counts: Per-token occurrence counts, one entry per label.
        alpha: Laplace smoothing parameter.
    """

    labels: tuple[str, ...] = LABELS
    label_counts: tuple[float, ...] = (0.0, 0.0)
    token_counts: Mapping[str, tuple[float, ...]] = field(default_factory=dict, repr=False)
    alpha: float = 1.0

    def __post_init__(self) -> None:
        n_labels = len(self.labels)
        if n_labels < 2 or len(set(self.labels)) != n_labels:
            raise ValueError(f"Model needs at least two distinct labels, got {self.labels}")
        if len(self.label_counts) != n_labels:
            raise ValueError(
                f"label_counts has {len(self.label_counts)} entries for {n_labels} labels"
            )
        if self.alpha <= 0:
            raise ValueError("alpha must be positive")

        counts = {}
        for token, row in self.token_counts.items():
            row = tuple(float(c) for c in row)
            if len(row) != n_labels:
                raise ValueError(f"Token {token!r} has {len(row)} counts for {n_labels} labels")
            counts[token] = row

        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "label_counts", tuple(float(c) for c in self.label_counts))
        object.__setattr__(self, "token_counts", MappingProxyType(counts))

        # fsum keeps totals independent of token insertion order.
        totals = tuple(math.fsum(row[i] for row in counts.values()) for i in range(n_labels))
        object.__setattr__(self, "_token_totals", totals)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, NaiveBayesModel):
            return NotImplemented
        return (
            self.labels == other.labels
            and self.label_counts == other.label_counts
            and self.alpha == other.alpha
            and dict(self.token_counts) == dict(other.token_counts)
        )

    @property
    def vocabulary(self) -> list[str]:
        """Model tokens in sorted order."""
        return sorted(self.token_counts)

    @property
    def vocabulary_size(self) -> int:
        return len(self.token_counts)

    @property
    def document_count(self) -> float:
        return math.fsum(self.label_counts)

    @property
    def token_totals(self) -> tuple[float, ...]:
        """Total token occurrences per label."""
        return self._token_totals  # type: ignore[attr-defined]

    @property
    def is_trained(self) -> bool:
        """Whether every label has at least one training document."""
        return all(c > 0 for c in self.label_counts)

    def log_scores(self, tokens: Iterable[str]) -> list[float]:
        """Unnormalized log posterior per label, in label order."""
        n_labels = len(self.labels)
        total_docs = self.document_count
        scores = [
            math.log((self.label_counts[i] + self.alpha) / (total_docs + self.alpha * n_labels))
            for i in range(n_labels)
        ]

        vocab_size = max(self.vocabulary_size, 1)
        denominators = [t + self.alpha * vocab_size for t in self.token_totals]
        for token in tokens:
            row = self.token_counts.get(token)
            if row is None:
                continue
            for i in range(n_labels):
                scores[i] += math.log((row[i] + self.alpha) / denominators[i])
        return scores

    def eval(self, tokens: Iterable[str]) -> list[float]:
        """Posterior probability per label, in label order."""
        log_scores = self.log_scores(tokens)
        max_score = max(log_scores)
        exp_scores = [math.exp(s - max_score) for s in log_scores]
        total = sum(exp_scores)
        return [s / total for s in exp_scores]

    def most_informative_tokens(self, label: str, top_n: int = 20) -> list[tuple[str, float]]:
        """Tokens whose smoothed likelihood most favours ``label``.

        Returns:
            ``(token, log_likelihood_ratio)`` pairs against the mean of the
            other labels, strongest first.

        Raises:
            ValueError: If ``label`` is not one of the model labels.
        """
        if label not in self.labels:
            raise ValueError(f"Unknown label: {label}. Known: {list(self.labels)}")

        target = self.labels.index(label)
        others = [i for i in range(len(self.labels)) if i != target]
        vocab_size = max(self.vocabulary_size, 1)
        denominators = [t + self.alpha * vocab_size for t in self.token_totals]

        ratios: list[tuple[str, float]] = []
        for token, row in self.token_counts.items():
            log_probs = [math.log((row[i] + self.alpha) / denominators[i]) for i in range(len(row))]
            avg_other = sum(log_probs[i] for i in others) / len(others)
            ratios.append((token, round(log_probs[target] - avg_other, 4)))

        ratios.sort(key=lambda x: (-x[1], x[0]))
        return ratios[:top_n]


# ---------------------------------------------------------------------------
# Trainer
# ---------------------------------------------------------------------------


class NaiveBayesTrainer:
    """Single-pass count trainer.

    Example::

        trainer = NaiveBayesTrainer()
        model = trainer.train([(tokens_a, "notable"), (tokens_b, "nonnotable")])
        warmer = trainer.train(more_documents, base=model)

    Args:
        labels: Ordered label set for new models.
        alpha: Laplace smoothing for new models.
    """

    def __init__(self, labels: Sequence[str] = LABELS, alpha: float = 1.0) -> None:
        self.labels = tuple(labels)
        self.alpha = alpha

    def train(
        self,
        documents: Iterable[tuple[Sequence[str], str]],
        base: Optional[NaiveBayesModel] = None,
    ) -> NaiveBayesModel:
        """Count tokens per label and return a new model.

        Args:
            documents: ``(tokens, label)`` pairs.
            base: Model to warm-start from. It is copied, never modified.

        Returns:
            A new NaiveBayesModel.

        Raises:
            ValueError: If a document label is unknown, or ``base`` uses a
                different label set.
        """
        if base is not None and base.labels != self.labels:
            raise ValueError(f"Base model labels {base.labels} do not match {self.labels}")

        n_labels = len(self.labels)
        index = {label: i for i, label in enumerate(self.labels)}
        label_counts = list(base.label_counts) if base else [0.0] * n_labels
        token_counts: dict[str, list[float]] = (
            {t: list(row) for t, row in base.token_counts.items()} if base else {}
        )

        for tokens, label in documents:
            if label not in index:
                raise ValueError(f"Unknown label: {label}. Known: {list(self.labels)}")
            i = index[label]
            label_counts[i] += 1
            for token, count in Counter(tokens).items():
                row = token_counts.get(token)
                if row is None:
                    row = token_counts[token] = [0.0] * n_labels
                row[i] += count

        return NaiveBayesModel(
            labels=self.labels,
            label_counts=tuple(label_counts),
            token_counts={t: tuple(row) for t, row in token_counts.items()},
            alpha=base.alpha if base else self.alpha,
        )


# ---------------------------------------------------------------------------
# Evaluation Metrics
# ---------------------------------------------------------------------------


@dataclass
class ClassificationMetrics:
    """Evaluation metrics for a set of predictions.

    Attributes:
        accuracy: Overall accuracy.
        per_class: Per-label precision, recall, F1 scores.
        macro_f1: Unweighted mean F1 across labels.
        confusion_matrix: ``{true: {predicted: count}}``.
        support: Per-label sample counts in the true labels.
    """

    accuracy: float = 0.0
    per_class: dict[str, dict[str, float]] = field(default_factory=dict)
    macro_f1: float = 0.0
    confusion_matrix: dict[str, dict[str, int]] = field(default_factory=dict)
    support: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "accuracy": round(self.accuracy, 4),
            "macro_f1": round(self.macro_f1, 4),
            "per_class": {
                cls: {k: round(v, 4) for k, v in metrics.items()}
                for cls, metrics in self.per_class.items()
            },
            "confusion_matrix": self.confusion_matrix,
            "support": self.support,
        }


def compute_metrics(y_true: list[str], y_pred: list[str]) -> ClassificationMetrics:
    """Compute classification metrics from true and predicted labels.

    Raises:
        ValueError: If the two lists differ in length.
    """
    if len(y_true) != len(y_pred):
        raise ValueError("y_true and y_pred must have the same length")

    classes = sorted(set(y_true) | set(y_pred))
    n = len(y_true)

    cm: dict[str, dict[str, int]] = {c: {c2: 0 for c2 in classes} for c in classes}
    for true, pred in zip(y_true, y_pred):
        cm[true][pred] += 1

    correct = sum(1 for t, p in zip(y_true, y_pred) if t == p)
    accuracy = correct / n if n > 0 else 0.0

    per_class: dict[str, dict[str, float]] = {}
    for cls in classes:
        tp = cm[cls][cls]
        fp = sum(cm[other][cls] for other in classes if other != cls)
        fn = sum(cm[cls][other] for other in classes if other != cls)

        precision = tp / (tp + fp) if (tp + fp) > 0 else 0.0
        recall = tp / (tp + fn) if (tp + fn) > 0 else 0.0
        f1 = 2 * precision * recall / (precision + recall) if (precision + recall) > 0 else 0.0
        per_class[cls] = {"precision": precision, "recall": recall, "f1": f1}

    macro_f1 = sum(m["f1"] for m in per_class.values()) / len(classes) if classes else 0.0

    return ClassificationMetrics(
        accuracy=accuracy,
        per_class=per_class,
        macro_f1=macro_f1,
        confusion_matrix=cm,
        support=dict(Counter(y_true)),
    )


# ---------------------------------------------------------------------------
# Categorizer (high-level API)
# ---------------------------------------------------------------------------


class Categorizer:
    """Scores token sequences against a loaded model.

    The wrapped model is treated as read-only, so one categorizer can be
    shared by concurrent classification calls.

    Args:
        model: Trained model.
        labels: Expected label order; must match the model.
        language: Language code of the training corpus.

    Raises:
        CorruptModelError: If the model's labels differ from ``labels``.
    """

    def __init__(
        self,
        model: NaiveBayesModel,
        labels: Sequence[str] = LABELS,
        language: str = LANGUAGE_CODE,
    ) -> None:
        if tuple(labels) != model.labels:
            raise CorruptModelError(
                f"Model labels {list(model.labels)} do not match expected {list(labels)}"
            )
        self._model = model
        self.labels = tuple(labels)
        self.language = language

    @property
    def model(self) -> NaiveBayesModel:
        return self._model

    def categorize(self, tokens: Sequence[str]) -> list[float]:
        """Posterior probability per label, in label order."""
        return self._model.eval(tokens)

    def best_label(self, probabilities: Sequence[float]) -> str:
        """Label with the highest probability; ties go to the earlier label."""
        best = 0
        for i, p in enumerate(probabilities):
            if p > probabilities[best]:
                best = i
        return self.labels[best]

    def classify(self, tokens: Sequence[str]) -> ClassificationResult:
        """Classify a token sequence."""
        probabilities = self.categorize(tokens)
        return ClassificationResult(
            label=self.best_label(probabilities),
            probabilities=dict(zip(self.labels, probabilities)),
            token_count=len(tokens),
        )

    def evaluate(self, documents: Iterable[tuple[Sequence[str], str]]) -> ClassificationMetrics:
        """Score labelled ``(tokens, label)`` documents against the model."""
        y_true: list[str] = []
        y_pred: list[str] = []
        for tokens, label in documents:
            y_true.append(label)
            y_pred.append(self.classify(tokens).label)
        return compute_metrics(y_true, y_pred)


def load_categorizer(
    store: Optional["ModelStore"] = None,
    config: Optional[ClassifierConfig] = None,
) -> Categorizer:
    """Load the persisted model and wrap it in a categorizer.

    Raises:
        ModelNotFoundError: If no model file exists.
        CorruptModelError: If the model file is malformed or its labels do
            not match the configuration.
    """
    from .store import ModelStore

    if store is None:
        store = ModelStore(config)
    config = store.config
    model = store.load()
    return Categorizer(model, labels=config.labels, language=config.language)
