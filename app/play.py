import argparse
import logging
import sys

from .api_client import ApiClient
from .game import DEBRIEF_LEVEL, GameSession
from .puzzles import get_puzzle, validate_intro_puzzle

INTRO_CIPHER = "SULQW VHUYHUV DUH WKH ZHDNHVW OLQN"


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play the secret agent escape room in the terminal.")
    parser.add_argument("--state-dir", help="Where game state and queued leads are stored.")
    parser.add_argument("--api", help="Base URL of the lead/score API (default from ESCAPE_API_ENDPOINT).")
    parser.add_argument("--source", choices=("tradeshow", "web"), default="web", help="Lead source tag.")
    parser.add_argument("--event", help="Event name recorded with the lead (tradeshow mode).")
    parser.add_argument("--reset", action="store_true", help="Discard saved progress and start over.")
    parser.add_argument("--retry-failed", action="store_true", help="Re-submit queued leads and exit.")
    parser.add_argument("--export-failed", metavar="PATH", help="Write queued leads as CSV and exit.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log sync activity.")
    return parser.parse_args(argv)


def _prompt(label: str, input_fn=input) -> str:
    return input_fn(f"{label}: ").strip()


def register(session: GameSession, input_fn=input, output=print) -> None:
    while not session.is_registered:
        try:
            session.register_player(
                name=_prompt("Agent name", input_fn),
                email=_prompt("Email", input_fn),
                company=_prompt("Company", input_fn),
                role=_prompt("Role (optional)", input_fn),
                phone=_prompt("Phone (optional)", input_fn) or None,
            )
        except ValueError as e:
            output(f"  {e}")


def play_intro(input_fn=input, output=print) -> None:
    output("Intercepted transmission:")
    output(f"  {INTRO_CIPHER}")
    while not validate_intro_puzzle(_prompt("Decoded message", input_fn)):
        output("  Incorrect. Try again, Agent.")


def play_level(session: GameSession, level_id: int, input_fn=input, output=print) -> None:
    puzzle = get_puzzle(level_id)
    output("")
    output(f"LEVEL {puzzle.id}: {puzzle.title}")
    output(f"  {puzzle.mission_brief}")
    output(f"  {puzzle.question}")

    while True:
        answer = _prompt("Answer (or 'hint')", input_fn)
        if answer.lower() == "hint":
            output(f"  HINT: {session.use_hint(level_id)}")
            continue
        if answer.lower() == "bonus":
            if session.find_hidden_bonus():
                output("  Hidden bonus found!")
            continue
        if session.submit_answer(level_id, answer):
            output(f"  Mission accomplished! Score: {session.score}")
            return
        output(f"  Incorrect. Try again, Agent. Score: {session.score}")


def run(args, input_fn=input, output=print) -> int:
    api = ApiClient(base_url=args.api, state_dir=args.state_dir)
    try:
        if args.export_failed:
            csv_text = api.export_failed_as_csv()
            if not csv_text:
                output("No queued leads to export")
                return 0
            with open(args.export_failed, "w", encoding="utf-8") as f:
                f.write(csv_text)
            output(f"Exported queued leads to {args.export_failed}")
            return 0

        if args.retry_failed:
            count = api.retry_failed_submissions()
            output(f"Submitted {count} queued lead(s)")
            return 0

        session = GameSession(state_dir=args.state_dir, api=api)
        if args.reset:
            session.reset_game()
        else:
            session.load()

        register(session, input_fn, output)
        if session.current_level == 0:
            play_intro(input_fn, output)
            session.start_game()

        while session.current_level < DEBRIEF_LEVEL:
            play_level(session, session.current_level, input_fn, output)

        output("")
        output(f"MISSION COMPLETE in {session.formatted_time}. Final score: {session.score}")
        if session.lead_submitted:
            output("Debrief already filed. Use --reset to play again.")
            return 0

        result = session.submit_lead(source=args.source, event=args.event)
        if result.get("success"):
            output("Debrief transmitted.")
        else:
            output("Debrief queued locally, it will be retried later.")
        return 0
    finally:
        api.shutdown()


def main(argv=None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format='%(asctime)s - %(levelname)s - %(name)s - %(message)s',
    )
    try:
        return run(args)
    except (KeyboardInterrupt, EOFError):
        print("\nProgress saved. Come back soon, Agent.")
        return 1


if __name__ == "__main__":
    sys.exit(main())
