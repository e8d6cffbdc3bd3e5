"""Interactive CLI application."""
import os
import sqlite3
import sys
from datetime import date
from typing import Optional

from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.theme import ThemeStackError

from cpp_tutor.content import APP_NAME, APP_VERSION, ATTRIBUTION, DATA_PRIVACY_INFO, LEGAL_DISCLAIMER
from cpp_tutor.dashboard import (
    get_chapter_rows, get_motivational_message, get_overall_stats, get_progress_color, get_weekly_activity,
)
from cpp_tutor.db import init_db, resolve_db_path
from cpp_tutor.errors import NotFoundError, PersistError, TutorError
from cpp_tutor.models import Flashcard, QuizSession
from cpp_tutor.persistence import ProgressGateway, StatsGateway
from cpp_tutor.progress import ProgressStore
from cpp_tutor.question_bank import QuestionBank
from cpp_tutor.quiz import (
    QUESTIONS_PER_QUIZ, finish_quiz, get_performance_message, get_score_color, option_letter,
    select_answer,
)
from cpp_tutor.settings import LIGHT_THEME, Settings, load_settings, save_settings

LOG_LEVEL_ENV = "CPP_TUTOR_LOG_LEVEL"
EXIT_WORDS = ("q", "menu")

console = Console(theme=LIGHT_THEME)


class SessionExitRequested(Exception):
    """Raised when the user types 'q' or 'menu' inside a study or quiz session."""


def configure_logging(level: Optional[str] = None) -> None:
    logger.remove()
    logger.add(
        sys.stderr,
        level=(level or os.environ.get(LOG_LEVEL_ENV) or "WARNING").upper(),
        format="<level>{level: <8}</level> | {message}",
    )


def apply_theme(settings: Settings, target: Optional[Console] = None) -> None:
    """Switch ``target`` (the app console by default) to the settings theme."""
    if target is None:
        target = console
    try:
        target.pop_theme()
    except ThemeStackError:
        pass  # only the base theme is on the stack
    target.push_theme(settings.theme)


def session_prompt(prompt: str, **kwargs) -> str:
    if "choices" in kwargs:
        kwargs["choices"] = list(kwargs["choices"]) + list(EXIT_WORDS)
    answer = Prompt.ask(prompt, **kwargs)
    if answer.strip().lower() in EXIT_WORDS:
        raise SessionExitRequested()
    return answer


def session_int_prompt(prompt: str, choices: list[str]) -> int:
    answer = session_prompt(prompt, choices=choices, show_choices=False)
    return int(answer)


def session_count_prompt(prompt: str, default: int) -> int:
    """Ask for a positive whole number, re-asking on anything else."""
    while True:
        answer = session_prompt(prompt, default=str(default))
        try:
            count = int(answer)
        except ValueError:
            count = 0
        if count >= 1:
            return count
        console.print("[red]Please enter a whole number of at least 1.[/red]")


def show_welcome():
    console.print(Panel(
        f"[bold]{APP_NAME}[/bold]\n[muted]Flashcards and practice quizzes[/muted]",
        title="Welcome", border_style="accent",
    ))


def show_menu():
    console.print("\n[bold]Commands:[/bold]")
    commands = [
        ("dashboard", "Overall progress"),
        ("chapters", "Chapter list"),
        ("study", "Study a chapter's flashcards"),
        ("quiz", "Take a chapter quiz"),
        ("favorites", "Review favorite cards"),
        ("review", "Review cards not yet mastered"),
        ("settings", "Appearance and progress reset"),
        ("about", "About this app"),
        ("quit", "Exit"),
    ]
    for cmd, desc in commands:
        console.print(f"  [accent]{cmd:<14}[/accent] {desc}")


def choose_chapter(store: ProgressStore) -> int:
    """Ask for a chapter number and return its index in the store."""
    for chapter in store.chapters:
        console.print(f"  [accent]{chapter.number}[/accent]) {chapter.title}")
    number = session_int_prompt("Select chapter", choices=[str(c.number) for c in store.chapters])
    return store.find_chapter_index(number)


def show_card(card: Flashcard, title: str) -> None:
    marker = " ★" if card.is_favorite else ""
    console.print(Panel(card.question, title=title + marker, border_style="card"))
    session_prompt("[muted]Press Enter to reveal answer[/muted]", default="", show_default=False)
    console.print(Panel(card.answer, border_style="answer"))


def rate_card(store: ProgressStore, chapter_index: int, card: Flashcard) -> str:
    """Ask how a revealed card went and record it. Returns the chosen action."""
    while True:
        action = session_prompt(
            "Mastered (m), review again (r), favorite (f) or skip (s)",
            choices=["m", "r", "f", "s"], default="s",
        )
        if action == "f":
            starred = store.toggle_favorite(chapter_index, card.id)
            console.print("[warning]Added to favorites[/warning]" if starred else "[muted]Removed from favorites[/muted]")
            continue
        if action == "m":
            store.mark_reviewed(chapter_index, card.id)
            store.mark_mastered(chapter_index, card.id)
        elif action == "r":
            store.mark_for_review(chapter_index, card.id)
        else:
            store.mark_reviewed(chapter_index, card.id)
        return action


def run_study_session(store: ProgressStore, chapter_index: int) -> None:
    chapter = store.chapter(chapter_index)
    if not chapter.flashcards:
        console.print("[warning]This chapter has no flashcards.[/warning]")
        return
    console.print(f"\n[bold]Chapter {chapter.number}: {chapter.title}[/bold]\n")
    position = -1
    while True:
        position = store.next_unmastered_index(chapter_index, after=position)
        if position is None:
            console.print(Panel("Congratulations! You've mastered all cards in this chapter.",
                                title="Chapter Mastered!", border_style="answer"))
            return
        card = chapter.flashcards[position]
        show_card(card, f"Card {position + 1}/{chapter.total_count}")
        rate_card(store, chapter_index, card)
        console.print(f"[muted]{chapter.mastered_count}/{chapter.total_count} mastered[/muted]\n")


def run_favorites_session(store: ProgressStore) -> None:
    favorites = store.favorite_cards()
    if not favorites:
        console.print("[warning]No favorite cards. Star a card while studying to add it.[/warning]")
        return
    for i, (chapter_index, card) in enumerate(favorites, 1):
        show_card(card, f"Favorite {i} of {len(favorites)}")
        action = session_prompt("Next (n) or unfavorite (u)", choices=["n", "u"], default="n")
        if action == "u":
            store.toggle_favorite(chapter_index, card.id)
            console.print("[muted]Removed from favorites[/muted]")


def run_review_session(store: ProgressStore) -> None:
    pending = store.unmastered_cards()
    if not pending:
        console.print("[answer]No cards for review. All cards have been mastered![/answer]")
        return
    for i, (chapter_index, card) in enumerate(pending, 1):
        number = store.chapter(chapter_index).number
        show_card(card, f"Chapter {number} · {i} of {len(pending)}")
        rate_card(store, chapter_index, card)


def run_quiz_session(bank: QuestionBank, chapter_number: int, count: int = QUESTIONS_PER_QUIZ) -> QuizSession:
    session = bank.generate_quiz(chapter_number, count=count)
    if not session.questions:
        console.print("[warning]No questions available for this chapter.[/warning]")
        return session
    total = len(session.questions)
    console.print(f"\n[bold]Quiz[/bold]: Chapter {chapter_number}, {total} questions\n")
    for i, q in enumerate(session.questions):
        console.print(f"[bold]Question {i + 1} of {total}.[/bold] {q.question}\n")
        letters = [option_letter(n) for n in range(len(q.options))]
        for letter, option in zip(letters, q.options):
            console.print(f"  [accent]{letter}.[/accent] {option}")
        answer = session_prompt("\nYour answer", choices=[letter.lower() for letter in letters])
        if select_answer(session, i, letters.index(answer.upper())):
            console.print("[answer]Correct![/answer]")
        else:
            console.print(f"[red]Wrong![/red] The correct answer is {option_letter(q.correct_answer_index)}.")
        if q.explanation:
            console.print(f"[muted]Explanation: {q.explanation}[/muted]")
        console.print()
    finish_quiz(session)
    show_quiz_result(session)
    return session


def show_quiz_result(session: QuizSession) -> None:
    pct = session.percentage_score
    color = get_score_color(pct)
    console.print(Panel(
        f"[bold]{session.score}[/bold] of {len(session.questions)} correct  "
        f"[{color}]{pct:.0f}%[/{color}]\n{get_performance_message(pct)}",
        title="Quiz Results", border_style=color,
    ))
    table = Table(title="Question Review")
    table.add_column("#", justify="right")
    table.add_column("Question")
    table.add_column("Your answer")
    table.add_column("Correct")
    for i, q in enumerate(session.questions, 1):
        mine = option_letter(q.selected_answer_index) if q.is_answered else "-"
        style = "answer" if q.is_correct else "red"
        table.add_row(str(i), q.question, f"[{style}]{mine}[/{style}]", option_letter(q.correct_answer_index))
    console.print(table)


def cmd_dashboard(store: ProgressStore):
    stats = get_overall_stats(store.chapters)
    mastery = stats["overall_mastery"]
    color = get_progress_color(mastery)
    bar_filled = int(mastery / 5)
    bar = f"[{color}]{'█' * bar_filled}{'░' * (20 - bar_filled)}[/{color}]"
    console.print(Panel(
        f"Overall Mastery: [bold]{mastery:.0f}%[/bold] {bar}\n{get_motivational_message(mastery)}",
        title="Dashboard", border_style="accent",
    ))
    console.print(f"\n  Mastered: [bold]{stats['mastered_cards']}[/bold]  |  "
                  f"Reviewed: [bold]{stats['reviewed_cards']}[/bold]  |  "
                  f"Total Cards: [bold]{stats['total_cards']}[/bold]  |  "
                  f"Favorites: [bold]{stats['favorite_cards']}[/bold]")
    today = date.today()
    console.print(f"  Study streak: [bold]{store.stats.current_streak(today)}[/bold] day(s)  |  "
                  f"Cards reviewed: [bold]{store.stats.total_cards_reviewed}[/bold]\n")
    week = Table(title="Mastered This Week")
    week.add_column("Day", style="accent")
    week.add_column("Mastered", justify="right")
    week.add_column("")
    for day, pct in get_weekly_activity(store.chapters, today):
        bar = "█" * max(int(pct / 5), 1 if pct > 0 else 0)
        week.add_row(day.strftime("%a"), f"{pct:.0f}%", f"[answer]{bar}[/answer]")
    console.print(week)
    table = Table(title="Chapter Progress")
    table.add_column("Chapter", style="accent")
    table.add_column("Progress", justify="right")
    for row in get_chapter_rows(store.chapters):
        c = get_progress_color(row["progress"])
        table.add_row(f"Chapter {row['number']}", f"[{c}]{row['progress']:.0f}%[/{c}]")
    console.print(table)


def cmd_chapters(store: ProgressStore):
    table = Table(title="Chapters")
    table.add_column("#", justify="right")
    table.add_column("Title", style="accent")
    table.add_column("Cards", justify="right")
    table.add_column("Mastered", justify="right")
    table.add_column("Progress", justify="right")
    for row in get_chapter_rows(store.chapters):
        table.add_row(
            str(row["number"]), row["title"], f"{row['reviewed']}/{row['total']} Cards",
            str(row["mastered"]), f"{row['progress']:.0f}%",
        )
    console.print(table)


def cmd_study(store: ProgressStore):
    console.print("\n[bold]Study[/bold]")
    run_study_session(store, choose_chapter(store))


def cmd_quiz(store: ProgressStore, bank: QuestionBank):
    console.print("\n[bold]Practice Quiz[/bold]")
    if not bank.is_loaded:
        console.print("[warning]The question bank is not available; quizzes are disabled.[/warning]")
        return
    chapter_index = choose_chapter(store)
    count = session_count_prompt("Number of questions", QUESTIONS_PER_QUIZ)
    run_quiz_session(bank, store.chapter(chapter_index).number, count=count)


def cmd_settings(db_path: str, settings: Settings, store: ProgressStore):
    mode = "dark" if settings.dark_mode else "light"
    console.print(f"\n[bold]Settings[/bold]  (appearance: {mode})")
    choice = Prompt.ask("Change", choices=["appearance", "reset", "back"], default="back")
    if choice == "appearance":
        settings.dark_mode = not settings.dark_mode
        try:
            save_settings(db_path, settings)
        except PersistError as e:
            logger.error("Settings not saved: {}", e)
            console.print("[warning]Appearance changed for this session only.[/warning]")
        apply_theme(settings)
        console.print(f"[answer]Appearance set to {'dark' if settings.dark_mode else 'light'}.[/answer]")
    elif choice == "reset":
        if Confirm.ask("Reset all progress? This cannot be undone", default=False):
            store.reset_all_progress()
            console.print("[answer]All progress has been reset.[/answer]")


def cmd_about():
    console.print(Panel(
        f"[bold]{APP_NAME}[/bold] v{APP_VERSION}\n\n{LEGAL_DISCLAIMER}\n\n{ATTRIBUTION}\n\n{DATA_PRIVACY_INFO}",
        title="About", border_style="accent",
    ))


def main():
    configure_logging()
    db_path = resolve_db_path()
    try:
        init_db(db_path)
    except (sqlite3.Error, OSError) as e:
        logger.error("Could not open progress database {}: {}", db_path, e)
        console.print("[warning]Progress cannot be saved this session.[/warning]")
    settings = load_settings(db_path)
    apply_theme(settings)

    bank = QuestionBank()
    bank.load()
    store = ProgressStore.from_defaults(ProgressGateway(db_path), stats_gateway=StatsGateway(db_path))

    show_welcome()

    while True:
        show_menu()
        choice = Prompt.ask("\n[bold]>[/bold]", default="dashboard").strip().lower()
        try:
            if choice == "dashboard":
                cmd_dashboard(store)
            elif choice == "chapters":
                cmd_chapters(store)
            elif choice == "study":
                cmd_study(store)
            elif choice == "quiz":
                cmd_quiz(store, bank)
            elif choice == "favorites":
                run_favorites_session(store)
            elif choice == "review":
                run_review_session(store)
            elif choice == "settings":
                cmd_settings(db_path, settings, store)
            elif choice == "about":
                cmd_about()
            elif choice in ("quit", "exit", "q"):
                console.print("[muted]Good luck on your exam![/muted]")
                break
            else:
                console.print("[red]Unknown command. Try again.[/red]")
        except SessionExitRequested:
            console.print("\n[muted]Back to menu.[/muted]")
        except KeyboardInterrupt:
            console.print("\n[muted]Use 'quit' to exit.[/muted]")
        except NotFoundError as e:
            logger.error("Stale reference: {}", e)
            console.print(f"[red]Error: {e}[/red]")
        except TutorError as e:
            logger.exception("Command {} failed", choice)
            console.print(f"[red]Error: {e}[/red]")


if __name__ == "__main__":
    main()
