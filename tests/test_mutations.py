"""Tests for the mutation summarizer."""

from cbioportal_dashboard.analysis.mutations import summarize_mutations
from cbioportal_dashboard.models import Gene, Mutation

TP53 = Gene(entrez_gene_id=7157, hugo_gene_symbol="TP53", type="protein-coding")


def mutation(sample_id: str, protein_change: str | None = "R175H", mutation_type: str | None = "Missense_Mutation") -> Mutation:
    return Mutation(
        sample_id=sample_id,
        entrez_gene_id=7157,
        protein_change=protein_change,
        mutation_type=mutation_type,
    )


class TestSummarizeMutations:
    """Tests for summarize_mutations."""

    def test_counts_and_rate(self) -> None:
        """Test 12 mutations in 10 distinct samples out of 200."""
        mutations = [mutation(f"S{i}") for i in range(10)] + [mutation("S0"), mutation("S1")]

        summary = summarize_mutations(mutations, TP53, 200)

        assert summary.total_mutations == 12
        assert summary.unique_samples == 10
        assert summary.mutation_rate == 5.0
        assert summary.gene is TP53

    def test_zero_sample_count(self) -> None:
        """Test that the rate is 0 rather than a division error."""
        summary = summarize_mutations([mutation("S1")], TP53, 0)

        assert summary.mutation_rate == 0

    def test_mutation_types(self) -> None:
        """Test that mutation types are ranked like a categorical distribution."""
        mutations = [
            mutation("S1", mutation_type="Nonsense_Mutation"),
            mutation("S2", mutation_type="Missense_Mutation"),
            mutation("S3", mutation_type="Missense_Mutation"),
            mutation("S4", mutation_type=None),
        ]

        summary = summarize_mutations(mutations, TP53, 100)

        assert summary.mutation_types.labels == ["Missense_Mutation", "Nonsense_Mutation"]
        assert summary.mutation_types.values == [2, 1]

    def test_top_protein_changes(self) -> None:
        """Test ranking and truncation of protein changes."""
        mutations = (
            [mutation(f"A{i}", protein_change="R273H") for i in range(3)]
            + [mutation(f"B{i}", protein_change="R175H") for i in range(5)]
            + [mutation("C1", protein_change="X125_splice")]
            + [mutation("D1", protein_change="")]
            + [mutation("E1", protein_change=None)]
        )

        summary = summarize_mutations(mutations, TP53, 100, top_n=2)

        assert [(p.protein_change, p.count) for p in summary.top_protein_changes] == [
            ("R175H", 5),
            ("R273H", 3),
        ]

    def test_default_top_n(self) -> None:
        mutations = [mutation(f"S{i}", protein_change=f"P{i}X") for i in range(15)]

        summary = summarize_mutations(mutations, TP53, 100)

        assert len(summary.top_protein_changes) == 10

    def test_empty(self) -> None:
        summary = summarize_mutations([], TP53, 100)

        assert summary.total_mutations == 0
        assert summary.unique_samples == 0
        assert summary.mutation_rate == 0
        assert summary.mutation_types.labels == []
        assert summary.top_protein_changes == []

    def test_to_dict(self) -> None:
        summary = summarize_mutations([mutation("S1")], TP53, 4)

        data = summary.to_dict()

        assert data["gene"]["hugoGeneSymbol"] == "TP53"
        assert data["mutationRate"] == 25.0
        assert data["topProteinChanges"] == [{"proteinChange": "R175H", "count": 1}]
