"""End-to-end tests for the join pipeline."""

import pytest

from alignjoin.assemble import assemble_segment
from alignjoin.config import JoinConfig
from alignjoin.dataset import PairwiseDataset
from alignjoin.emit import FastaEmitter, MemoryEmitter
from alignjoin.errors import AbortReason, AlignerError
from alignjoin.io import read_fasta
from alignjoin.pipeline import SegmentState, emit_segment, join_alignments, process_segment
from alignjoin.segment import SegmentCandidate

SEGMENT = SegmentCandidate("chr1", 5, 60)


@pytest.fixture
def config(tmp_path):
    return JoinConfig(min_length=10, indel_expand=3, indel_join=3, output_dir=str(tmp_path))


@pytest.fixture
def two_chromosomes(chrom, alignment_factory, dataset_factory):
    """Datasets with indel-dense windows on chr1 and chr2."""
    return [
        dataset_factory("TvsR", "Tgt", "Out", [
            alignment_factory(chrom, 1, 60, deletions={5}),
            alignment_factory(chrom, 1, 60, chr_name="chr2", insertions={40: "AA"}),
        ]),
        dataset_factory("TvsQ1", "Tgt", "Qa", [
            alignment_factory(chrom, 1, 60, insertions={6: "C"}),
            alignment_factory(chrom, 1, 60, chr_name="chr2", deletions={41, 42}),
        ]),
        dataset_factory("TvsQ2", "Tgt", "Qb", [
            alignment_factory(chrom, 1, 60, deletions={6, 7}),
            alignment_factory(chrom, 1, 60, chr_name="chr2"),
        ]),
    ]


class TruncatedDataset(PairwiseDataset):
    """Hands back a query row one column short."""

    def get_aligned_pair(self, alignment_id):
        target, query = super().get_aligned_pair(alignment_id)
        return target, query[:-1]


class EventLog:
    """Shared log for an aligner and an emitter, in call order."""

    def __init__(self):
        self.events = []
        self.emitter = MemoryEmitter()

    def align(self, sequences):
        self.events.append("align")
        return list(sequences)

    def add_alignment(self, target, query, outgroup, all_indel):
        self.events.append("emit")
        return self.emitter.add_alignment(target, query, outgroup, all_indel)


class FailingAligner:
    def align(self, sequences):
        raise AlignerError("aligner crashed")


class TestProcessSegment:
    def test_resolved_rows(self, three_datasets, roles, config, chrom):
        result = process_segment(SEGMENT, three_datasets, roles, config)
        assert result.state is SegmentState.COMPLEX_RESOLVED
        assert result.ready

        rows = [result.records[role].seq for role in roles]
        assert len({len(r) for r in rows}) == 1
        assert result.records[roles.target].seq.replace("-", "") == chrom[4:60]

        outgroup = result.records[roles.outgroup]
        assert outgroup.raw_seq is not None
        assert outgroup.complex is not None
        assert outgroup.all_indel is not None

    def test_ingroup_content_preserved(self, three_datasets, roles, config):
        before = {
            p.dataset: p.query.seq.replace("-", "")
            for p in assemble_segment(three_datasets, SEGMENT)
        }
        result = process_segment(SEGMENT, three_datasets, roles, config)
        assert result.records[roles.queries[0]].seq.replace("-", "") == before["TvsQ1"]
        assert result.records[roles.queries[1]].seq.replace("-", "") == before["TvsQ2"]
        assert result.records[roles.outgroup].raw_seq.replace("-", "") == before["TvsR"]

    def test_no_all_gap_columns_left(self, three_datasets, roles, config):
        result = process_segment(SEGMENT, three_datasets, roles, config)
        ingroup = [result.records[role].seq for role in roles.ingroup]
        for column in zip(*ingroup):
            assert set(column) != {"-"}

    def test_crude_only_stops_after_sync(self, three_datasets, roles, config):
        crude = config.with_overrides(crude_only=True)
        result = process_segment(SEGMENT, three_datasets, roles, crude)
        assert result.state is SegmentState.SYNCED
        assert list(result.snapshots) == ["crude"]
        assert len({len(r.seq) for r in result.snapshots["crude"]}) == 1

    def test_overlapping_alignments_pick_spanning_one(
        self, chrom, alignment_factory, dataset_factory, roles, config
    ):
        datasets = [
            dataset_factory("TvsR", "Tgt", "Out", [
                alignment_factory(chrom, 1, 40),
                alignment_factory(chrom, 20, 60),
            ]),
            dataset_factory("TvsQ1", "Tgt", "Qa", [alignment_factory(chrom, 25, 60)]),
            dataset_factory("TvsQ2", "Tgt", "Qb", [alignment_factory(chrom, 25, 60)]),
        ]
        segment = SegmentCandidate("chr1", 25, 60)
        result = process_segment(segment, datasets, roles, config)
        assert result.ready
        assert result.records[roles.target].seq == chrom[24:60]
        assert result.records[roles.outgroup].alignment_id == 2

    def test_length_mismatch_abandons(self, three_datasets, roles, config):
        original = three_datasets[1]
        datasets = [
            three_datasets[0],
            TruncatedDataset(original.name, [original.get_alignment(1)],
                             target=original.target, query=original.query),
            three_datasets[2],
        ]
        result = process_segment(SEGMENT, datasets, roles, config)
        assert result.abandoned
        assert result.reason is AbortReason.LENGTH_MISMATCH

    def test_lookup_miss_abandons(self, three_datasets, roles, config):
        result = process_segment(SegmentCandidate("chr1", 1, 60), three_datasets, roles, config)
        assert result.abandoned
        assert result.reason is AbortReason.LOOKUP_MISS
        assert result.records == {}

    def test_aligner_error_is_fatal(self, three_datasets, roles, config):
        with pytest.raises(AlignerError):
            process_segment(SEGMENT, three_datasets, roles, config, aligner=FailingAligner())

    def test_aligner_error_abandons_when_asked(self, three_datasets, roles, config):
        lenient = config.with_overrides(abort_on_aligner_error=True)
        result = process_segment(SEGMENT, three_datasets, roles, lenient, aligner=FailingAligner())
        assert result.reason is AbortReason.ALIGNER_FAILURE

    def test_emit_requires_resolved(self, three_datasets, roles, config):
        result = process_segment(SegmentCandidate("chr1", 1, 60), three_datasets, roles, config)
        with pytest.raises(ValueError):
            emit_segment(result, roles, MemoryEmitter())


class TestJoinAlignments:
    def test_emits_every_ingroup_pair(self, three_datasets, roles, config):
        emitter = MemoryEmitter()
        summary = join_alignments(three_datasets, roles, config, emitter=emitter)

        assert summary.selected == 1
        assert summary.resolved == 1
        assert summary.emitted == 1
        assert summary.alignment_ids == [1, 2, 3]
        names = [(a.target.name, a.query.name) for a in emitter.alignments]
        assert names == [("Tgt", "Qa"), ("Tgt", "Qb"), ("Qa", "Qb")]
        outgroup = emitter.alignments[0].outgroup
        assert all(a.outgroup is outgroup for a in emitter.alignments)
        assert emitter.alignments[0].all_indel == outgroup.all_indel

    def test_no_insert(self, three_datasets, roles, config):
        emitter = MemoryEmitter()
        summary = join_alignments(
            three_datasets, roles, config.with_overrides(no_insert=True), emitter=emitter)
        assert summary.resolved == 1
        assert summary.emitted == 0
        assert len(emitter) == 0

    def test_crude_only_writes_fasta(self, three_datasets, roles, config, tmp_path):
        emitter = MemoryEmitter()
        summary = join_alignments(
            three_datasets, roles, config.with_overrides(crude_only=True), emitter=emitter)
        assert summary.crude == 1
        assert len(emitter) == 0

        path = tmp_path / "joined.crude" / "idTgt_chr1_5_60.fas"
        rows = list(read_fasta(path))
        assert [name for name, _ in rows] == ["Out", "Tgt", "Qa", "Qb"]
        assert len({len(seq) for _, seq in rows}) == 1

    def test_snapshot_directories(self, three_datasets, roles, config, tmp_path):
        snap = config.with_overrides(raw_fasta=True, trimmed_fasta=True, goal="run")
        join_alignments(three_datasets, roles, snap)
        assert (tmp_path / "run.raw" / "idTgt_chr1_5_60.fas").exists()
        assert (tmp_path / "run" / "idTgt_chr1_5_60.fas").exists()
        assert not (tmp_path / "run.crude").exists()

    def test_short_segments_skipped(self, three_datasets, roles, config):
        summary = join_alignments(three_datasets, roles, config.with_overrides(min_length=56))
        assert summary.selected == 0

    def test_lookup_miss_counted(self, chrom, alignment_factory, dataset_factory, roles, config):
        datasets = [
            dataset_factory("TvsR", "Tgt", "Out", [alignment_factory(chrom, 1, 60)]),
            dataset_factory("TvsQ1", "Tgt", "Qa", [alignment_factory(chrom, 1, 60)]),
            # adjacent alignments merge into one covered run
            dataset_factory("TvsQ2", "Tgt", "Qb", [
                alignment_factory(chrom, 1, 30),
                alignment_factory(chrom, 31, 60),
            ]),
        ]
        summary = join_alignments(datasets, roles, config, emitter=MemoryEmitter())
        assert summary.selected == 1
        assert summary.abandoned[AbortReason.LOOKUP_MISS] == 1
        assert summary.emitted == 0
        assert "lookup_miss=1" in str(summary)

    def test_workers_match_serial(self, two_chromosomes, roles, config):
        serial, pooled = MemoryEmitter(), MemoryEmitter()
        join_alignments(two_chromosomes, roles, config, emitter=serial)
        summary = join_alignments(
            two_chromosomes, roles, config.with_overrides(workers=2), emitter=pooled)

        assert summary.emitted == 2
        assert [(a.target.seq, a.query.seq, a.outgroup.seq) for a in serial.alignments] == [
            (a.target.seq, a.query.seq, a.outgroup.seq) for a in pooled.alignments
        ]
        assert summary.alignment_ids == [1, 2, 3, 4, 5, 6]

    def test_segments_emitted_as_they_finish(self, two_chromosomes, roles, config):
        log = EventLog()
        summary = join_alignments(two_chromosomes, roles, config, aligner=log, emitter=log)
        assert summary.emitted == 2
        assert log.events.count("emit") == 6
        # the first segment is emitted before the second one is realigned
        last_align = len(log.events) - 1 - log.events[::-1].index("align")
        assert log.events.index("emit") < last_align

    def test_distant_segments_abandoned(
        self, chrom, alignment_factory, dataset_factory, roles, config
    ):
        distant = {i: "A" if chrom[i] != "A" else "C" for i in range(0, 60, 2)}
        datasets = [
            dataset_factory("TvsR", "Tgt", "Out", [
                alignment_factory(chrom, 1, 60),
                alignment_factory(chrom, 1, 60, chr_name="chr2"),
                alignment_factory(chrom, 1, 60, chr_name="chr3", substitutions=distant),
            ]),
        ] + [
            dataset_factory(name, "Tgt", query, [
                alignment_factory(chrom, 1, 60, chr_name=chr_name)
                for chr_name in ("chr1", "chr2", "chr3")
            ])
            for name, query in (("TvsQ1", "Qa"), ("TvsQ2", "Qb"))
        ]
        emitter = MemoryEmitter()
        summary = join_alignments(
            datasets, roles, config.with_overrides(discard_distant=50), emitter=emitter)

        assert summary.selected == 3
        assert summary.abandoned[AbortReason.DISTANT] == 1
        assert summary.resolved == 2
        assert len(emitter) == 6

    def test_dataset_count_checked(self, three_datasets, roles, config):
        with pytest.raises(ValueError):
            join_alignments(three_datasets[:2], roles, config)

    def test_fasta_emitter(self, three_datasets, roles, config, tmp_path):
        emitter = FastaEmitter(tmp_path / "pairs")
        join_alignments(three_datasets, roles, config, emitter=emitter)

        assert [p.name for p in emitter.written] == [
            "idTgt_chr1_5_60_Tgt_Qa.fas",
            "idTgt_chr1_5_60_Tgt_Qb.fas",
            "idQa_chr1_5_63_Qa_Qb.fas",
        ]
        rows = list(read_fasta(emitter.written[0]))
        assert len(rows) == 4
        assert rows[2][0].startswith("Out.")
        assert "|complex=" in rows[2][0]
        assert rows[3][0] == "Out.raw"
