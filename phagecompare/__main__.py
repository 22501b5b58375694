#!/usr/bin/env python3
"""
PhageCompare - Main command line interface
"""

import argparse
import signal
import sys
import time
from contextlib import contextmanager

from .cache import SignatureCache
from .cancel import STATUS_CANCELLED, CancelToken
from .config import (
    CACHE_MAX_BYTES,
    CACHE_MAX_ENTRIES,
    DEFAULT_EXACT_K,
    DEFAULT_MIN_VALID_RATIO,
    DEFAULT_STEP,
    DEFAULT_WINDOW,
    DEFAULT_Z_THRESHOLD,
    MAX_DONORS,
    MINHASH_K,
    MINHASH_NUM_HASHES,
    SYNTENY_MATCH_THRESHOLD,
    ComparisonConfig,
    HGTOptions,
    SyntenyOptions,
)
from .engine import compare_genomes, format_similarity
from .hgt import analyze_hgt_provenance
from .io_utils import read_fasta, read_genes, read_references, read_single_fasta, write_json
from .log import setup_logging
from .minhash import SketchEngine
from .synteny import align_synteny


def banner(title):
    print("=" * 60, file=sys.stderr)
    print(title, file=sys.stderr)
    print("=" * 60, file=sys.stderr)


def info(message):
    print(message, file=sys.stderr)


@contextmanager
def cancel_on_interrupt():
    """First Ctrl-C cancels the running analysis cooperatively; partial results are still written"""
    token = CancelToken()
    previous = signal.getsignal(signal.SIGINT)

    def _handler(signum, frame):
        info("Cancellation requested, finishing current step...")
        token.cancel()
        signal.signal(signal.SIGINT, previous)

    signal.signal(signal.SIGINT, _handler)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def make_engine(args):
    cache = SignatureCache(max_entries=args.cache_entries, max_bytes=args.cache_bytes)
    return SketchEngine(cache=cache, prefer_accelerated=not args.no_numba)


def run_hgt(args):
    banner("PHAGECOMPARE HGT PROVENANCE")
    info(f"Genome FASTA: {args.fasta}")
    info(f"Genes:        {args.genes or '-'}")
    info(f"References:   {', '.join(args.references) if args.references else '-'}")
    info(f"Window/step:  {args.window}/{args.step} bp, |z| >= {args.z_threshold}")
    banner("")

    start_time = time.time()
    sequence = read_single_fasta(args.fasta, args.record)
    genes = read_genes(args.genes) if args.genes else []
    references = read_references(args.references) if args.references else {}
    options = HGTOptions(
        window=args.window,
        step=args.step,
        z_threshold=args.z_threshold,
        min_valid_ratio=args.min_valid_ratio,
        k=args.k,
        num_hashes=args.num_hashes,
        exact_k=args.exact_k,
        use_minhash=not args.no_minhash,
        refine_top_n=args.refine_top_n,
        max_donors=args.max_donors,
    )
    info(f"Loaded {len(sequence)} bp, {len(genes)} genes, {len(references)} references")

    engine = make_engine(args) if references and options.use_minhash else None
    try:
        with cancel_on_interrupt() as cancel:
            result = analyze_hgt_provenance(
                sequence, genes, references, options, engine=engine, cancel=cancel, progress=True
            )
    finally:
        if engine is not None:
            engine.close()
    write_json(result, args.output)

    banner("PHAGECOMPARE HGT COMPLETE" if result.status != STATUS_CANCELLED else "PHAGECOMPARE HGT CANCELLED")
    info(f"Genome GC:  {result.genome_gc:.2f}%")
    info(f"Islands:    {len(result.islands)}")
    for stamp in result.stamps:
        island = stamp.island
        donor = f"{stamp.donor.taxon} ({stamp.donor.similarity:.3f}, {stamp.donor.confidence})" if stamp.donor else "-"
        info(f"  {island.start}-{island.end}  GC {island.gc_percent:.1f}%  z {island.z_score:+.2f}  "
             f"{stamp.amelioration:<12}  donor: {donor}")
    info(f"Total time: {time.time() - start_time:.2f}s")


def run_synteny(args):
    banner("PHAGECOMPARE SYNTENY")
    genes_a = read_genes(args.genes_a)
    genes_b = read_genes(args.genes_b)
    info(f"Genome A: {len(genes_a)} genes ({args.genes_a})")
    info(f"Genome B: {len(genes_b)} genes ({args.genes_b})")

    with cancel_on_interrupt() as cancel:
        result = align_synteny(
            genes_a, genes_b, SyntenyOptions(match_threshold=args.match_threshold),
            cancel=cancel, progress=True,
        )
    write_json(result, args.output)

    banner("PHAGECOMPARE SYNTENY COMPLETE" if result.status != STATUS_CANCELLED else "PHAGECOMPARE SYNTENY CANCELLED")
    info(f"Blocks:       {len(result.blocks)}")
    info(f"Coverage (A): {result.global_score:.3f}")
    info(f"DTW distance: {result.dtw_distance}")


def run_compare(args):
    banner("PHAGECOMPARE GENOME COMPARISON")
    seq_a = read_single_fasta(args.fasta_a)
    seq_b = read_single_fasta(args.fasta_b)
    genes_a = read_genes(args.genes_a) if args.genes_a else []
    genes_b = read_genes(args.genes_b) if args.genes_b else []
    config = ComparisonConfig(
        kmer_sizes=tuple(int(k) for k in args.kmer_sizes.split(",")),
        max_edit_distance_length=args.max_edit_length,
        include_gene_comparison=not args.no_genes,
        include_codon_usage=not args.no_codons,
    )

    result = compare_genomes(args.fasta_a, args.fasta_b, seq_a, seq_b, genes_a, genes_b, config)
    write_json(result, args.output)

    summary = result.summary
    banner("PHAGECOMPARE COMPARISON COMPLETE")
    info(f"Overall similarity: {summary.overall_similarity:.1f}% ({format_similarity(summary.overall_similarity)})")
    info(f"Confidence:         {summary.confidence_level}")
    for insight in summary.insights:
        info(f"  [{insight.category}] {insight.message}")
    info(f"Total time: {result.compute_time_ms / 1000:.2f}s")


def run_sketch(args):
    banner("PHAGECOMPARE MINHASH SKETCH")
    sequences = {}
    for path in args.fasta:
        sequences.update(read_fasta(path))
    info(f"Sketching {len(sequences)} sequences (k={args.k}, {args.num_hashes} hashes)")

    with make_engine(args) as engine:
        info(f"Backend: {engine.backend.name}")
        signatures = {}
        for record_id, seq in sequences.items():
            sig = engine.signature(seq, args.k, args.num_hashes, canonical=not args.no_canonical)
            if sig is None:
                info(f"  {record_id}: no valid {args.k}-mer, skipped")
                continue
            signatures[record_id] = sig

        ids = list(signatures)
        matrix = {
            a: {b: engine.jaccard(signatures[a], signatures[b]) for b in ids}
            for a in ids
        }
        output = {"jaccard": matrix}
        if args.include_signatures:
            output["signatures"] = {record_id: sig.to_dict() for record_id, sig in signatures.items()}
        write_json(output, args.output)


def main(argv=None):
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--output", "-o", default=None, help="Output JSON file (default: stdout)")
    common.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    sketch_opts = argparse.ArgumentParser(add_help=False)
    sketch_opts.add_argument("-k", type=int, default=MINHASH_K, help="MinHash k-mer length")
    sketch_opts.add_argument("--num-hashes", type=int, default=MINHASH_NUM_HASHES, help="MinHash signature length")
    sketch_opts.add_argument("--no-numba", action="store_true", help="Use the numpy MinHash backend only")
    sketch_opts.add_argument("--cache-entries", type=int, default=CACHE_MAX_ENTRIES, help="Signature cache entry limit")
    sketch_opts.add_argument("--cache-bytes", type=int, default=CACHE_MAX_BYTES, help="Signature cache byte limit")

    parser = argparse.ArgumentParser(
        description="PhageCompare: phage genome comparison and horizontal gene transfer provenance",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # hgt command
    hgt_parser = subparsers.add_parser("hgt",
        help="Detect genomic islands and infer donors",
        parents=[common, sketch_opts],
        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    hgt_parser.add_argument("--fasta", required=True, help="Genome FASTA file")
    hgt_parser.add_argument("--record", default=None, help="Record ID within the FASTA (default: first)")
    hgt_parser.add_argument("--genes", help="Gene annotations (GenBank or TSV)")
    hgt_parser.add_argument("--references", nargs="+", help="Donor reference FASTA file(s)")
    hgt_parser.add_argument("--window", type=int, default=DEFAULT_WINDOW, help="Window size in bp")
    hgt_parser.add_argument("--step", type=int, default=DEFAULT_STEP, help="Step size between windows")
    hgt_parser.add_argument("--z-threshold", type=float, default=DEFAULT_Z_THRESHOLD, help="|z| threshold for island windows")
    hgt_parser.add_argument("--min-valid-ratio", type=float, default=DEFAULT_MIN_VALID_RATIO,
                            help="Minimum fraction of unambiguous bases per window")
    hgt_parser.add_argument("--exact-k", type=int, default=DEFAULT_EXACT_K, help="k for exact k-mer Jaccard fallback")
    hgt_parser.add_argument("--no-minhash", action="store_true", help="Use exact k-mer Jaccard for donors")
    hgt_parser.add_argument("--refine-top-n", type=int, default=0, help="Re-score top N MinHash donors exactly")
    hgt_parser.add_argument("--max-donors", type=int, default=MAX_DONORS, help="Donor candidates kept per island")

    # synteny command
    syn_parser = subparsers.add_parser("synteny",
        help="Align gene order of two genomes",
        parents=[common],
        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    syn_parser.add_argument("--genes-a", required=True, help="Gene annotations of genome A (GenBank or TSV)")
    syn_parser.add_argument("--genes-b", required=True, help="Gene annotations of genome B (GenBank or TSV)")
    syn_parser.add_argument("--match-threshold", type=float, default=SYNTENY_MATCH_THRESHOLD,
                            help="Gene distance below which a pair counts as syntenic")

    # compare command
    cmp_parser = subparsers.add_parser("compare",
        help="Full pairwise genome comparison",
        parents=[common],
        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    cmp_parser.add_argument("--fasta-a", required=True, help="Genome A FASTA")
    cmp_parser.add_argument("--fasta-b", required=True, help="Genome B FASTA")
    cmp_parser.add_argument("--genes-a", help="Gene annotations of genome A")
    cmp_parser.add_argument("--genes-b", help="Gene annotations of genome B")
    cmp_parser.add_argument("--kmer-sizes", default="3,5,7,11", help="Comma-separated k values")
    cmp_parser.add_argument("--max-edit-length", type=int, default=10000,
                            help="Longest sequence for exact edit distance")
    cmp_parser.add_argument("--no-genes", action="store_true", help="Skip gene content comparison")
    cmp_parser.add_argument("--no-codons", action="store_true", help="Skip codon/amino-acid usage")

    # sketch command
    sk_parser = subparsers.add_parser("sketch",
        help="MinHash signatures and pairwise Jaccard estimates",
        parents=[common, sketch_opts],
        formatter_class=argparse.ArgumentDefaultsHelpFormatter)
    sk_parser.add_argument("--fasta", required=True, nargs="+", help="FASTA file(s) to sketch")
    sk_parser.add_argument("--no-canonical", action="store_true", help="Hash forward-strand k-mers only")
    sk_parser.add_argument("--include-signatures", action="store_true", help="Include raw signatures in the output")

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    setup_logging(args.verbose)

    try:
        if args.command == "hgt":
            run_hgt(args)
        elif args.command == "synteny":
            run_synteny(args)
        elif args.command == "compare":
            run_compare(args)
        elif args.command == "sketch":
            run_sketch(args)
    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
