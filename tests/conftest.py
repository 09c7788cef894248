"""Shared test fixtures for alignjoin tests."""

import random

import pytest

from alignjoin.dataset import PairwiseAlignment, PairwiseDataset, TaxonInfo
from alignjoin.roles import RoleMap


def make_alignment(
    chrom,
    start,
    end,
    insertions=None,
    deletions=(),
    substitutions=None,
    chr_name="chr1",
    query_chr="chr1",
    query_start=1,
    query_strand="+",
):
    """Pairwise alignment of ``chrom[start-1:end]`` against an edited copy.

    *insertions* maps a 0-based offset in the slice to query bases placed
    after it (gaps in the target row); *deletions* are offsets the query
    lacks (gaps in the query row).
    """
    insertions = insertions or {}
    substitutions = substitutions or {}
    t_row, q_row = [], []
    for i, base in enumerate(chrom[start - 1 : end]):
        t_row.append(base)
        q_row.append("-" if i in deletions else substitutions.get(i, base))
        if i in insertions:
            t_row.append("-" * len(insertions[i]))
            q_row.append(insertions[i])
    t_seq, q_seq = "".join(t_row), "".join(q_row)
    q_len = len(q_seq) - q_seq.count("-")
    return PairwiseAlignment(
        target_seq=t_seq,
        query_seq=q_seq,
        target_chr=chr_name,
        target_start=start,
        target_end=end,
        query_chr=query_chr,
        query_start=query_start,
        query_end=query_start + q_len - 1,
        query_strand=query_strand,
    )


def make_dataset(name, target, query, alignments):
    return PairwiseDataset(
        name, alignments, target=TaxonInfo(target, target), query=TaxonInfo(query, query)
    )


@pytest.fixture
def alignment_factory():
    return make_alignment


@pytest.fixture
def dataset_factory():
    return make_dataset


@pytest.fixture
def chrom():
    """A 60bp target chromosome."""
    random.seed(42)
    return "".join(random.choice("ACGT") for _ in range(60))


@pytest.fixture
def three_datasets(chrom):
    """Target aligned to an outgroup and two queries, gapped differently.

    Common coverage of all three is chr1:5-60.
    """
    outgroup = make_dataset("TvsR", "Tgt", "Out", [
        make_alignment(chrom, 1, 60, insertions={30: "GG"}, deletions={10, 11},
                       substitutions={3: "A" if chrom[3] != "A" else "C"}),
    ])
    query1 = make_dataset("TvsQ1", "Tgt", "Qa", [
        make_alignment(chrom, 1, 60, insertions={20: "TTT"}),
    ])
    query2 = make_dataset("TvsQ2", "Tgt", "Qb", [
        make_alignment(chrom, 5, 60, insertions={26: "GG"}, deletions={36, 37, 38}),
    ])
    return [outgroup, query1, query2]


@pytest.fixture
def roles():
    """Standard layout: outgroup and target from dataset 0, queries from 1 and 2."""
    return RoleMap.from_codes("0query", "0target", ["1query", "2query"], 3)
