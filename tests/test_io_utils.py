import json

import numpy as np
import pytest
from Bio.Seq import Seq
from Bio.SeqFeature import SeqFeature, SimpleLocation
from Bio.SeqRecord import SeqRecord
from Bio import SeqIO

from phagecompare.errors import InsufficientData
from phagecompare.io_utils import (
    read_fasta,
    read_genes,
    read_genes_tsv,
    read_references,
    read_single_fasta,
    write_json,
)


@pytest.fixture
def fasta_file(tmp_path):
    path = tmp_path / "genomes.fasta"
    path.write_text(">phage1 first\nacgtacgt\nACGT\n>phage2\nGGGGCCCC\n")
    return str(path)


@pytest.fixture
def genbank_file(tmp_path):
    record = SeqRecord(Seq("ATG" + "AAA" * 98 + "TAA" + "C" * 300), id="NC_TEST", name="TEST",
                       annotations={"molecule_type": "DNA"})
    record.features = [
        SeqFeature(SimpleLocation(0, 300, strand=1), type="CDS",
                   qualifiers={"locus_tag": ["T_001"], "gene": ["terL"], "product": ["terminase large subunit"]}),
        SeqFeature(SimpleLocation(300, 400, strand=-1), type="tRNA",
                   qualifiers={"locus_tag": ["T_002"], "product": ["tRNA-Met"]}),
        SeqFeature(SimpleLocation(400, 600, strand=1), type="misc_feature"),
    ]
    path = tmp_path / "phage.gb"
    SeqIO.write(record, str(path), "genbank")
    return str(path)


class TestFasta:
    def test_read_fasta(self, fasta_file):
        sequences = read_fasta(fasta_file)
        assert sequences == {"phage1": "ACGTACGTACGT", "phage2": "GGGGCCCC"}

    def test_read_single(self, fasta_file):
        assert read_single_fasta(fasta_file) == "ACGTACGTACGT"
        assert read_single_fasta(fasta_file, "phage2") == "GGGGCCCC"

    def test_missing_record(self, fasta_file):
        with pytest.raises(KeyError):
            read_single_fasta(fasta_file, "phage3")

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.fasta"
        path.write_text("")
        with pytest.raises(InsufficientData):
            read_single_fasta(str(path))

    def test_references_keep_first_duplicate(self, fasta_file, tmp_path):
        other = tmp_path / "more.fasta"
        other.write_text(">phage2\nAAAA\n>phage3\nTTTT\n")
        references = read_references([fasta_file, str(other)])
        assert references["phage2"] == "GGGGCCCC"
        assert references["phage3"] == "TTTT"


class TestGenes:
    def test_genbank(self, genbank_file):
        genes = read_genes(genbank_file)
        assert [g.id for g in genes] == ["T_001", "T_002"]
        terl, trna = genes
        assert (terl.start, terl.end, terl.strand) == (0, 300, "+")
        assert terl.name == "terL"
        assert terl.product == "terminase large subunit"
        assert trna.strand == "-"
        assert trna.label == "tRNA-Met"

    def test_tsv(self, tmp_path):
        path = tmp_path / "genes.tsv"
        path.write_text(
            "locus_tag\tstart\tend\tstrand\tname\tproduct\n"
            "P_001\t0\t900\t+\tterL\tterminase large subunit\n"
            "P_002\t950\t1500\t-\t\tportal protein\n"
        )
        genes = read_genes(str(path))
        assert [g.id for g in genes] == ["P_001", "P_002"]
        assert genes[1].name is None
        assert genes[1].strand == "-"
        assert genes[1].end == 1500

    def test_tsv_external_column_names(self, tmp_path):
        path = tmp_path / "genes.txt"
        path.write_text("id\tstartPos\tendPos\tproduct\ng1\t10\t20\tholin\n")
        (gene,) = read_genes_tsv(str(path))
        assert (gene.id, gene.start, gene.end, gene.product) == ("g1", 10, 20, "holin")


class TestJson:
    def test_write_to_file(self, tmp_path):
        out = tmp_path / "out.json"
        write_json({"values": np.arange(3), "score": np.float32(0.5)}, str(out))
        assert json.loads(out.read_text()) == {"values": [0, 1, 2], "score": 0.5}

    def test_write_to_stdout(self, capsys):
        write_json({"status": "complete"})
        assert json.loads(capsys.readouterr().out) == {"status": "complete"}

    def test_unserialisable(self):
        with pytest.raises(TypeError):
            write_json({"bad": object()})
