#!/usr/bin/env python3
"""
PhageCompare I/O Module
Read genomes and gene annotations from FASTA, GenBank and TSV; write JSON results

Version: 1.0.0
License: MIT
"""

import csv
import json
import logging
import sys
from typing import Dict, List, Optional

import numpy as np
from Bio import SeqIO

from .errors import InsufficientData
from .models import Gene

logger = logging.getLogger(__name__)

GENE_FEATURE_TYPES = ("CDS", "tRNA")


def read_fasta(fasta_file: str) -> Dict[str, str]:
    """
    Read every record of a FASTA file

    Args:
        fasta_file: Path to FASTA file

    Returns:
        Dictionary with record IDs as keys and uppercase sequences as values
    """
    sequences = {}
    for record in SeqIO.parse(fasta_file, "fasta"):
        sequences[record.id] = str(record.seq).upper()
    logger.debug(f"Read {len(sequences)} sequences from {fasta_file}")
    return sequences


def read_single_fasta(fasta_file: str, record_id: Optional[str] = None) -> str:
    """Sequence of one record (the first one unless record_id is given)"""
    sequences = read_fasta(fasta_file)
    if not sequences:
        raise InsufficientData(f"No sequences found in {fasta_file}")
    if record_id is None:
        return next(iter(sequences.values()))
    if record_id not in sequences:
        raise KeyError(f"Record {record_id} not found in {fasta_file}")
    return sequences[record_id]


def _qualifier(feature, key):
    values = feature.qualifiers.get(key)
    return values[0] if values else None


def read_genes_genbank(genbank_file: str) -> List[Gene]:
    """CDS and tRNA features of the first GenBank record, in file order"""
    record = next(SeqIO.parse(genbank_file, "genbank"), None)
    if record is None:
        return []

    genes = []
    for feature in record.features:
        if feature.type not in GENE_FEATURE_TYPES:
            continue
        locus_tag = _qualifier(feature, "locus_tag")
        name = _qualifier(feature, "gene")
        genes.append(Gene(
            id=_qualifier(feature, "protein_id") or locus_tag or f"{feature.type}_{len(genes) + 1}",
            start=int(feature.location.start),
            end=int(feature.location.end),
            strand="-" if feature.location.strand == -1 else "+",
            name=name,
            product=_qualifier(feature, "product"),
            locus_tag=locus_tag,
        ))
    logger.debug(f"Read {len(genes)} genes from {genbank_file}")
    return genes


def read_genes_tsv(tsv_file: str) -> List[Gene]:
    """
    Gene table with a header row

    Required columns: start, end (or startPos, endPos). Optional: id, name,
    product, locus_tag (or locusTag), strand. Coordinates are half-open.
    """
    genes = []
    with open(tsv_file, "r", newline="") as fh:
        reader = csv.DictReader(fh, delimiter="\t")
        for i, row in enumerate(reader, start=1):
            row = {key: value for key, value in row.items() if value not in (None, "")}
            row.setdefault("id", row.get("locus_tag", row.get("locusTag", f"gene_{i}")))
            genes.append(Gene.from_dict(row))
    return genes


def read_genes(path: str) -> List[Gene]:
    """Dispatch on extension: .gb/.gbk/.genbank -> GenBank, anything else -> TSV"""
    if path.lower().endswith((".gb", ".gbk", ".gbff", ".genbank")):
        return read_genes_genbank(path)
    return read_genes_tsv(path)


def read_references(paths: List[str]) -> Dict[str, str]:
    """Donor references from one or more FASTA files, keyed by record ID"""
    references = {}
    for path in paths:
        for record_id, seq in read_fasta(path).items():
            if record_id in references:
                logger.warning(f"Duplicate reference ID {record_id} in {path}; keeping the first")
                continue
            references[record_id] = seq
    return references


def _jsonable(obj):
    if hasattr(obj, "to_dict"):
        return obj.to_dict()
    if isinstance(obj, np.generic):
        return obj.item()
    if isinstance(obj, np.ndarray):
        return obj.tolist()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(obj, output_file: Optional[str] = None, indent: int = 2):
    """Write a result (anything with to_dict(), or plain data) as JSON to a file or stdout"""
    if hasattr(obj, "to_dict"):
        obj = obj.to_dict()
    text = json.dumps(obj, indent=indent, default=_jsonable)
    if output_file:
        with open(output_file, "w") as fh:
            fh.write(text + "\n")
        logger.info(f"Results written to {output_file}")
    else:
        sys.stdout.write(text + "\n")
