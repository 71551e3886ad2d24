#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
cipherbreak.py: encrypt, decrypt and brute-force classical ciphers from the shell
"""

import argparse
import os
import sys
from typing import List, Optional

from colorama import Fore, Style
from colorama import init as _init_colorama

from cipherengine import (
    MAX_RESULTS, TOP_CANDIDATES, CandidateResult, CipherError, CipherType, CrackJob, CrackOptions,
    InvalidKey, UnsupportedOperation, autokey_keystream, cipher_type_from, decode, encode, parse_key,
    product_decode_stages, product_encode_stages, vernam_steps,
)
from crackjob import CrackJobRunner, JobMessage

# ---------- Colors ----------
_init_colorama(autoreset=True)
BOLD = Style.BRIGHT; RESET = Style.RESET_ALL
CYAN, GREEN, YELLOW, BLUE = Fore.CYAN, Fore.GREEN, Fore.YELLOW, Fore.BLUE

def cCYN(s): return f"{BOLD}{CYAN}{s}{RESET}"
def cGRN(s): return f"{BOLD}{GREEN}{s}{RESET}"
def cYEL(s): return f"{BOLD}{YELLOW}{s}{RESET}"
def cBLU(s): return f"{BLUE}{s}{RESET}"

def eprint(*a, **k): print(*a, file=sys.stderr, **k)

# ---------- Report ----------
REPORT_PATH = "report.txt"

def write_report_file(results: List[CandidateResult], job: CrackJob, path: str = REPORT_PATH) -> bool:
    """Write the ranked candidates, leading ones first. Returns False if the file can't be written."""
    ct = cipher_type_from(job.cipher_type)
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write("============================================\n")
            f.write(f"  Cipher     : {ct.value}\n")
            if ct is CipherType.PRODUCT:
                f.write(f"  Legs       : {job.options.sub_type} + {job.options.trans_type}\n")
            f.write(f"  Ciphertext : {job.ciphertext}\n")
            f.write("============================================\n\n")
            f.write("               Leading candidates\n")
            f.write("--------------------------------------------\n")
            for i, r in enumerate(results[:TOP_CANDIDATES], 1):
                f.write(f"#{i} [{r.confidence:3d}%] {r.key_display}\n    {r.plaintext}\n")
            f.write("\n\n               All candidates\n")
            f.write("--------------------------------------------\n")
            for i, r in enumerate(results, 1):
                f.write(f"#{i} [{r.confidence:3d}%] {r.key_display} :: {r.plaintext}\n")
    except OSError as e:
        eprint(cYEL(f"Failed to write report: {e}"))
        return False
    return True

# ---------- Helpers ----------
def is_file(p: str) -> bool:
    try:
        return os.path.isfile(p)
    except (OSError, ValueError):
        return False

def read_value_or_file(v: Optional[str]) -> Optional[str]:
    if v is None: return None
    if is_file(v):
        with open(v, "r", encoding="utf-8", errors="ignore") as f:
            return f.read().strip()
    return v

def _confidence_color(conf: int):
    if conf >= 60: return cGRN
    if conf >= 30: return cYEL
    return cBLU

def print_candidate(rank: int, r: CandidateResult):
    paint = _confidence_color(r.confidence)
    print(f"#{rank:<3} {paint(f'{r.confidence:3d}%')}  {r.key_display}")
    print(f"      {r.plaintext}")

def print_leading(results: List[CandidateResult], show_all: bool, top: int):
    if not results:
        print(cYEL("No candidates found."))
        return
    best = results[0]
    print("\n==============")
    print(f"Best guess : {cGRN(best.plaintext)}")
    print(f"Key        : {best.key_display}  ({best.confidence}% confidence)")
    print("==============\n")
    shown = results if show_all else results[:top]
    for i, r in enumerate(shown, 1):
        print_candidate(i, r)
    if not show_all and len(results) > top:
        print(cBLU(f"... {len(results) - top} more (use --all)"))

# ---------- Interactive ----------
def interactive_flow(args) -> str:
    if not args.type:
        args.type = input("Cipher type (e.g., additive, vigenere, product): ").strip()
    text_in = input("Text (raw string or path to file): ").strip()
    return read_value_or_file(text_in) or ""

# ---------- Operations ----------
def run_crack(args, text: str) -> int:
    job = CrackJob(cipher_type_from(args.type), text, CrackOptions(args.sub, args.trans))
    runner = CrackJobRunner()

    def on_message(msg: JobMessage):
        if msg.kind == "progress" and args.debug:
            eprint(cCYN(f"[{msg.generation}] {msg.message}"))

    print(cCYN(f"=== Cracking {job.cipher_type.value} ==="))
    runner.submit(job, on_message)
    outcome = runner.wait()
    runner.consume()
    if outcome is None:
        print(cYEL("Job did not finish.")); return 1
    if outcome.kind == "error":
        print(cYEL(f"Error: {outcome.message}")); return 1
    print_leading(outcome.results, args.all, args.top)
    if args.report:
        if not write_report_file(outcome.results, job, args.report):
            return 1
        print(cBLU(f"Report written to {args.report}"))
    return 0

def run_transform(args, text: str) -> int:
    ct = cipher_type_from(args.type)
    key_text = read_value_or_file(args.key)
    if key_text is None:
        key_text = input("Key: ").strip()
    trans_text = read_value_or_file(args.trans_key)
    key = parse_key(ct, key_text, args.sub, args.trans, trans_text)
    decrypting = args.operation == "decode"

    if ct is CipherType.PRODUCT:
        stage_fn = product_decode_stages if decrypting else product_encode_stages
        middle, out = stage_fn(text, key)
        print(f"{'After transposition' if decrypting else 'After substitution'} : {cBLU(middle)}")
    else:
        out = (decode if decrypting else encode)(ct, text, key)

    if args.debug:
        if ct is CipherType.AUTOKEY:
            plain = out if decrypting else text
            eprint(cCYN(f"Keystream: {autokey_keystream(plain, key.seed)}"))
        elif ct is CipherType.VERNAM:
            for s in vernam_steps(text, key.pad, decrypt=decrypting):
                eprint(cCYN(f"{s.letter}({s.letter_num}) {'-' if decrypting else '+'} "
                            f"{s.key_letter}({s.key_num}) = {s.result}({s.result_num})"))

    label = "Plaintext " if decrypting else "Ciphertext"
    print(f"{label} : {cGRN(out)}")
    print(f"Key        : {key.display()}")
    return 0

# ---------- Main ----------
def _run(argv: Optional[List[str]]) -> int:
    types = [c.value for c in CipherType]
    ap = argparse.ArgumentParser(
        description="cipherbreak: classical cipher encoder/decoder and brute-force cracker",
        add_help=False
    )
    ap.add_argument("operation", choices=["crack", "encode", "decode"], help="What to do with the text")
    ap.add_argument("-t","--type", choices=types, metavar="TYPE", help=f"Cipher type: {', '.join(types)}")
    ap.add_argument("-c","--text", help="Input text (raw string or path to file)")
    ap.add_argument("-k","--key", help="Key (raw string or path to file); substitution key for product")
    ap.add_argument("--trans-key", help="Transposition key for the product cipher")
    ap.add_argument("--sub", default=CipherType.VIGENERE.value, help="Product cipher substitution leg")
    ap.add_argument("--trans", default=CipherType.COLUMNAR.value, help="Product cipher transposition leg")
    ap.add_argument("-n","--top", type=int, default=TOP_CANDIDATES, help="How many leading candidates to show")
    ap.add_argument("-a","--all", action="store_true", help=f"Show every ranked candidate (up to {MAX_RESULTS})")
    ap.add_argument("-r","--report", help="Write ranked candidates to this file")
    ap.add_argument("-d","--debug", action="store_true", help="Show progress, keystreams and tracebacks")
    ap.add_argument("-h","--help", action="help", help="Show this help and exit")
    args = ap.parse_args(argv)

    if args.text is None:
        text = interactive_flow(args)
    else:
        if not args.type:
            ap.error("-t/--type is required with -c/--text")
        text = read_value_or_file(args.text)

    try:
        if args.operation == "crack":
            return run_crack(args, text)
        return run_transform(args, text)
    except (InvalidKey, UnsupportedOperation) as e:
        print(cYEL(f"Error: {e}"))
        return 2
    except CipherError as e:
        if args.debug:
            raise
        print(cYEL(f"Error: {e}"))
        return 1

def main(argv: Optional[List[str]] = None) -> int:
    try:
        return _run(argv)
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130

if __name__ == "__main__":
    sys.exit(main())
