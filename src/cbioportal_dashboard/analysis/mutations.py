"""Per-gene mutation summaries."""

from collections import Counter
from typing import Sequence

from cbioportal_dashboard.analysis.aggregation import frequency_distribution
from cbioportal_dashboard.models import Gene, Mutation, MutationSummary, ProteinChangeCount

DEFAULT_TOP_PROTEIN_CHANGES = 10


def summarize_mutations(
    mutations: Sequence[Mutation],
    gene: Gene,
    sample_count: int,
    top_n: int = DEFAULT_TOP_PROTEIN_CHANGES,
) -> MutationSummary:
    """Summarize one gene's mutations in one study.

    The mutation rate is the percentage of the study's samples with at least
    one mutation, and is 0 when the sample count is unknown.
    """
    unique_samples = len({m.sample_id for m in mutations})
    rate = unique_samples * 100 / sample_count if sample_count > 0 else 0.0

    protein_changes: Counter[str] = Counter(
        m.protein_change for m in mutations if m.protein_change
    )
    ranked = sorted(protein_changes.items(), key=lambda kv: kv[1], reverse=True)[:top_n]

    return MutationSummary(
        gene=gene,
        total_mutations=len(mutations),
        unique_samples=unique_samples,
        mutation_rate=rate,
        mutation_types=frequency_distribution(m.mutation_type for m in mutations),
        top_protein_changes=[ProteinChangeCount(p, c) for p, c in ranked],
    )
