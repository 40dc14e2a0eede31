#!/usr/bin/env python3
"""uiforge - natural-language request to a refined, self-contained HTML page.

Usage:
    python main.py generate --prompt "Build a pricing page"                  # print HTML
    python main.py generate --prompt "..." --output page.html --verbose      # write file
    python main.py generate --prompt "..." --max-iters 2 --target-only       # stopping policy
    python main.py generate --prompt "..." --samples 3                       # 3 candidates/iteration
    python main.py serve --port 5001
    python main.py config
"""

import argparse
import json
import sys

from config.defaults import DEFAULTS
from core.config import MODEL_FIELDS, ConfigStore
from core.quality import RefinementPolicy
from core.service import GenerationService
from utils.log import configure_logging


def _print_progress(stage, score):
    suffix = f" (best {score:.1f})" if score is not None else ""
    print(f"[{stage}]{suffix}", file=sys.stderr)


def _build_policy(args):
    return RefinementPolicy(
        max_iterations=args.max_iters,
        target_score=args.target,
        min_improvement=None if args.target_only else args.min_improvement,
        samples_per_iteration=args.samples,
    )


def _build_config(args):
    config_store = ConfigStore()
    if args.model:
        config_store.update({"models": {wire: args.model for wire in MODEL_FIELDS}})
    return config_store


def cmd_generate(args):
    """Run the full pipeline synchronously."""
    service = GenerationService(config_store=_build_config(args), policy=_build_policy(args))
    on_progress = _print_progress if args.verbose else None
    result = service.run_sync(args.prompt, reflections=args.reflections or "", on_progress=on_progress)

    print(f"Score:       {result.score:.1f}", file=sys.stderr)
    print(f"Stopped:     {result.stop_reason}", file=sys.stderr)
    print(f"Iterations:  {len(result.iterations)}", file=sys.stderr)
    if args.verbose:
        for it in result.iterations:
            scores = ", ".join(f"{s:.1f}" for s in it.candidate_scores)
            print(f"  #{it.number}: candidates [{scores}] winner={it.winner} "
                  f"best={it.best_score:.1f} (+{it.improvement:.1f})", file=sys.stderr)
        winner = result.evaluation.entry(result.evaluation.winner_id)
        for weakness in (winner.overall.weaknesses if winner else []):
            print(f"  weakness: {weakness}", file=sys.stderr)

    if args.output:
        with open(args.output, "w") as f:
            f.write(result.artifact)
        print(f"Output:      {args.output}", file=sys.stderr)
    else:
        print(result.artifact)


def cmd_serve(args):
    import server
    print(f"uiforge running at http://localhost:{args.port}")
    server.app.run(debug=False, port=args.port)


def cmd_config(args):
    print(json.dumps(_build_config(args).get().to_dict(), indent=2))


def main():
    parser = argparse.ArgumentParser(
        prog="uiforge",
        description="Generate a self-contained HTML page through iterative LLM refinement",
    )
    parser.add_argument("--log-level", help="Logging level (default: $LOG_LEVEL or INFO)")
    subparsers = parser.add_subparsers(dest="command")

    gen_parser = subparsers.add_parser("generate", help="Generate a page synchronously")
    gen_parser.add_argument("--prompt", required=True, help="Natural language request")
    gen_parser.add_argument("--reflections", help="Extra user preferences passed to every stage")
    gen_parser.add_argument("--model", help="Use this model for every stage")
    gen_parser.add_argument("--max-iters", type=int, default=DEFAULTS["max_iterations"],
                            help=f"Max refinement iterations (default: {DEFAULTS['max_iterations']})")
    gen_parser.add_argument("--target", type=float, default=DEFAULTS["target_score"],
                            help=f"Stop once the best score reaches this (default: {DEFAULTS['target_score']})")
    stop_group = gen_parser.add_mutually_exclusive_group()
    stop_group.add_argument("--min-improvement", type=float, default=DEFAULTS["min_improvement"],
                            help=f"Stop when an iteration gains less (default: {DEFAULTS['min_improvement']})")
    stop_group.add_argument("--target-only", action="store_true",
                            help="Stop only on the target score or the iteration limit")
    gen_parser.add_argument("--samples", type=int, default=DEFAULTS["samples_per_iteration"],
                            help="Refinement candidates per iteration (default: 1)")
    gen_parser.add_argument("--output", help="Write the HTML here instead of stdout")
    gen_parser.add_argument("--verbose", action="store_true", help="Show stages and iteration details")

    serve_parser = subparsers.add_parser("serve", help="Run the web API")
    serve_parser.add_argument("--port", type=int, default=5001)

    config_parser = subparsers.add_parser("config", help="Show the effective model configuration")
    config_parser.add_argument("--model", help="Use this model for every stage")

    args = parser.parse_args()
    configure_logging(args.log_level)

    if args.command == "generate":
        cmd_generate(args)
    elif args.command == "serve":
        cmd_serve(args)
    elif args.command == "config":
        cmd_config(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
