"""Tests for the pairwise dataset backend."""

import numpy as np
import pytest

from alignjoin.dataset import PairwiseAlignment, load_dataset


@pytest.fixture
def dataset(dataset_factory):
    # target chr1:101-108 with a 2bp query insertion after the 4th base
    aln = PairwiseAlignment(
        target_seq="ACGT--ACGT",
        query_seq="ACGTTTAC-T",
        target_chr="chr1",
        target_start=101,
        target_end=108,
        query_chr="chrA",
        query_start=11,
        query_end=19,
    )
    return dataset_factory("TvsQ", "Tgt", "Qry", [aln])


class TestPairwiseAlignment:
    def test_rejects_unequal_rows(self):
        with pytest.raises(ValueError):
            PairwiseAlignment("ACGT", "ACG", "chr1", 1, 4, "chr1", 1, 3)

    def test_rejects_wrong_span(self):
        with pytest.raises(ValueError):
            PairwiseAlignment("AC-T", "ACGT", "chr1", 1, 4, "chr1", 1, 4)


class TestTranslation:
    def test_locate(self, dataset):
        assert dataset.locate("chr1", 101) == (1, False)
        assert dataset.locate("chr1", 108) == (1, False)
        assert dataset.locate("chr1", 109) is None
        assert dataset.locate("chr2", 101) is None

    def test_locate_overlap_flagged(self, chrom, alignment_factory, dataset_factory):
        ds = dataset_factory("X", "T", "Q", [
            alignment_factory(chrom, 1, 30),
            alignment_factory(chrom, 25, 60),
        ])
        assert ds.locate("chr1", 27) == (1, True)
        assert ds.locate("chr1", 40) == (2, False)

    def test_locate_prefers_alignment_spanning_end(self, chrom, alignment_factory, dataset_factory):
        ds = dataset_factory("X", "T", "Q", [
            alignment_factory(chrom, 1, 40),
            alignment_factory(chrom, 20, 60),
        ])
        assert ds.locate("chr1", 25, 60) == (2, True)
        assert ds.locate("chr1", 25, 35) == (1, True)
        assert ds.locate("chr1", 10, 50) is None

    def test_at_align_skips_target_gaps(self, dataset):
        assert dataset.at_align(1, 101) == 1
        assert dataset.at_align(1, 104) == 4
        assert dataset.at_align(1, 105) == 7
        assert dataset.at_align(1, 108) == 10
        assert dataset.at_align(1, 120) is None

    def test_to_query_chr_plus(self, dataset):
        assert dataset.to_query_chr(1, 1) == 11
        assert dataset.to_query_chr(1, 6) == 16
        # column 9 is a query gap: nearest preceding query base
        assert dataset.to_query_chr(1, 9) == 18

    def test_to_query_chr_minus(self, chrom, alignment_factory, dataset_factory):
        aln = alignment_factory(chrom, 1, 10, query_start=201, query_strand="-")
        ds = dataset_factory("X", "T", "Q", [aln])
        assert ds.to_query_chr(1, 1) == aln.query_end
        assert ds.to_query_chr(1, 10) == 201

    def test_unknown_alignment(self, dataset):
        with pytest.raises(KeyError):
            dataset.get_alignment(7)


class TestCoverage:
    def test_valid_positions(self, chrom, alignment_factory, dataset_factory):
        ds = dataset_factory("X", "T", "Q", [
            alignment_factory(chrom, 1, 20),
            alignment_factory(chrom, 31, 60),
        ])
        assert ds.valid_positions("chr1").runlist() == "1-20,31-60"
        assert ds.valid_positions("chr1", reduce_end=5).runlist() == "6-15,36-55"
        assert ds.valid_positions("chr9").is_empty()

    def test_reduce_end_drops_short_alignments(self, chrom, alignment_factory, dataset_factory):
        ds = dataset_factory("X", "T", "Q", [alignment_factory(chrom, 1, 6)])
        assert ds.valid_positions("chr1", reduce_end=4).is_empty()

    def test_chromosomes_sorted(self, chrom, alignment_factory, dataset_factory):
        ds = dataset_factory("X", "T", "Q", [
            alignment_factory(chrom, 1, 10, chr_name="chr2"),
            alignment_factory(chrom, 1, 10, chr_name="chr1"),
        ])
        assert ds.chromosomes() == ["chr1", "chr2"]

    def test_identity_ratios(self, dataset):
        ratios = dataset.identity_ratios()
        assert isinstance(ratios, np.ndarray)
        assert ratios.tolist() == pytest.approx([7 / 10])


class TestLoadDataset:
    def test_load_directory(self, tmp_path):
        d = tmp_path / "TvsQ"
        d.mkdir()
        (d / "a.fas").write_text(
            ">Tgt.chr1(+):1-8\nACGT--ACGT\n>Qry.chrA(+):1-10\nACGTTTACGT\n\n"
        )
        (d / "b.fas").write_text(
            ">Tgt.chr2(+):11-14\nACGT\n>Qry.chrB(-):5-7\nAC-T\n\n"
        )
        ds = load_dataset(d)
        assert ds.name == "TvsQ"
        assert len(ds) == 2
        assert ds.target.name == "Tgt"
        assert ds.query.name == "Qry"
        assert ds.chromosomes() == ["chr1", "chr2"]
        assert ds.get_alignment(2).query_strand == "-"

    def test_missing_path(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_dataset(tmp_path)
