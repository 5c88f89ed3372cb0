"""
Day Planner — Telegram Bot.

Telegram is the user interface: daily timeline, month calendar, task and
note management, plan-my-day, rewards and AI sub-task suggestions all flow
through bot commands.

Security-first: unauthorized users are silently ignored.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, tzinfo
from datetime import time as dt_time
from functools import wraps
from typing import TYPE_CHECKING, Any, Callable, Coroutine
from zoneinfo import ZoneInfo

from telegram import Update
from telegram.ext import Application, ApplicationBuilder, CommandHandler, ContextTypes

from src.config import settings
from src.data.models import Category, Criticality, CustomReward, Note, Repeat, Task

if TYPE_CHECKING:
    from src.core.reminders import ReminderScheduler
    from src.data.store import Stores
    from src.ports.notification_port import NotificationPort

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Security: silent-ignore decorator
# ---------------------------------------------------------------------------


def authorized_only(
    func: Callable[..., Coroutine[Any, Any, None]],
) -> Callable[..., Coroutine[Any, Any, None]]:
    """Decorator that silently ignores messages from unauthorized users.

    Unexpected errors inside an authorized handler are logged and answered
    with a generic reply instead of leaving the user without an answer.
    """

    @wraps(func)
    async def wrapper(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
        user = update.effective_user
        if user is None or user.id not in settings.ALLOWED_USER_IDS:
            uid = user.id if user else "unknown"
            logger.warning("Unauthorized access attempt from user_id=%s", uid)
            return  # Silent ignore
        try:
            return await func(update, context)
        except Exception as exc:
            logger.error("%s failed: %s", func.__name__, exc)
            await update.message.reply_text("Something went wrong. Please try again.")

    return wrapper


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------


def _tz() -> tzinfo:
    if settings.TIMEZONE:
        return ZoneInfo(settings.TIMEZONE)
    return datetime.now().astimezone().tzinfo


def _now() -> datetime:
    """Wall-clock time in the configured zone, as a naive local datetime."""
    return datetime.now(_tz()).replace(tzinfo=None)


def _today() -> date:
    return _now().date()


def _resync_time() -> dt_time:
    """00:01 in the configured zone; job_queue reads naive times as UTC."""
    return dt_time(hour=0, minute=1, tzinfo=_tz())


def _stores(context: ContextTypes.DEFAULT_TYPE) -> Stores:
    return context.bot_data["stores"]


def _sync_reminders(context: ContextTypes.DEFAULT_TYPE) -> None:
    """Re-derive all reminders after any change to the task list."""
    scheduler: ReminderScheduler | None = context.bot_data.get("reminders")
    if scheduler is not None:
        scheduler.sync(_stores(context).tasks.load())


def _load_profile(context: ContextTypes.DEFAULT_TYPE):
    """Load the profile, applying the passive streak decay check."""
    from src.core.gamification import refresh_streak

    store = _stores(context).profile
    profile = store.load()
    refreshed = refresh_streak(profile, _today())
    if refreshed != profile:
        store.save(refreshed)
    return refreshed


def _parse_date(text: str) -> date | None:
    try:
        return date.fromisoformat(text)
    except ValueError:
        return None


def _parse_hhmm(text: str) -> tuple[int, int] | None:
    try:
        t = datetime.strptime(text.strip(), "%H:%M").time()
    except ValueError:
        return None
    return t.hour, t.minute


def _parse_month(text: str) -> tuple[int, int] | None:
    try:
        d = datetime.strptime(text.strip(), "%Y-%m")
    except ValueError:
        return None
    return d.year, d.month


def _new_id() -> str:
    return uuid.uuid4().hex[:8]


_ADD_USAGE = (
    "Usage: /add YYYY-MM-DD HH:MM <minutes> <none|daily|weekly|monthly> "
    "<urgent|high|medium|low> <Work|Home|Life> <title>"
)


def parse_add_args(args: list[str]) -> Task | str:
    """Build a Task from /add arguments, or return an error message."""
    if len(args) < 7:
        return _ADD_USAGE

    raw_date, raw_time, raw_duration, raw_repeat, raw_crit, raw_cat = args[:6]
    title = " ".join(args[6:]).strip()

    day = _parse_date(raw_date)
    hm = _parse_hhmm(raw_time)
    if day is None or hm is None:
        return "Invalid date or time. " + _ADD_USAGE
    try:
        duration = int(raw_duration)
    except ValueError:
        return "Duration must be a number of minutes."
    if duration < 1:
        return "Duration must be at least 1 minute."
    try:
        repeat = Repeat(raw_repeat.lower())
        criticality = Criticality(raw_crit.lower())
        category = Category(raw_cat.capitalize())
    except ValueError:
        return _ADD_USAGE

    return Task(
        id=_new_id(),
        title=title,
        category=category,
        due_date=datetime(day.year, day.month, day.day, hm[0], hm[1]),
        duration=duration,
        criticality=criticality,
        repeat=repeat,
    )


_EDIT_FIELDS = (
    "title", "description", "category", "date", "time",
    "duration", "criticality", "repeat", "reminder",
)

_EDIT_USAGE = "Usage: /edit <task id> <field> <value>\nFields: " + ", ".join(_EDIT_FIELDS)


def apply_task_edit(task: Task, field_name: str, value: str) -> Task | str:
    """Return the task with one field changed, or an error message."""
    from dataclasses import replace

    field_name = field_name.lower()
    value = value.strip()

    if field_name == "title":
        if not value:
            return "Title cannot be empty."
        return replace(task, title=value)
    if field_name == "description":
        # "-" clears the description
        return replace(task, description=None if value in ("", "-") else value)
    if field_name == "date":
        day = _parse_date(value)
        if day is None:
            return "Date must be YYYY-MM-DD."
        return replace(task, due_date=datetime.combine(day, task.due_date.time()))
    if field_name == "time":
        from src.core.drag import move_to_time

        hm = _parse_hhmm(value)
        if hm is None:
            return "Time must be HH:MM."
        return move_to_time(task, *hm)
    if field_name == "duration":
        if not value.isdigit() or int(value) < 1:
            return "Duration must be at least 1 minute."
        return replace(task, duration=int(value))
    if field_name == "reminder":
        if not value.isdigit():
            return "Reminder must be a number of minutes (0 = off)."
        return replace(task, reminder=int(value) or None)
    try:
        if field_name == "category":
            return replace(task, category=Category(value.capitalize()))
        if field_name == "criticality":
            return replace(task, criticality=Criticality(value.lower()))
        if field_name == "repeat":
            return replace(task, repeat=Repeat(value.lower()))
    except ValueError:
        return f"Invalid {field_name}: {value}"
    return _EDIT_USAGE


def _format_task(task: Task) -> str:
    repeat = task.repeat.value if isinstance(task.repeat, Repeat) else task.repeat
    line = (
        f"• {task.title} [{task.id}] — {task.due_date:%Y-%m-%d %H:%M}, "
        f"{task.duration} min, {repeat}"
    )
    if task.reminder:
        line += f", 🔔 {task.reminder} min"
    if task.description:
        line += f"\n  {task.description}"
    return line


# ---------------------------------------------------------------------------
# Welcome & help
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_start(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    profile = _load_profile(context)
    if not profile.name:
        await update.message.reply_text(
            "Welcome to Day Planner! What should I call you? Reply with /name <your name>."
        )
        return
    await update.message.reply_text(f"Welcome back, {profile.name}! Try /today or /plan.")


@authorized_only
async def cmd_name(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.gamification import set_profile_name

    name = " ".join(context.args or []).strip()
    if not name:
        await update.message.reply_text("Usage: /name <your name>")
        return
    store = _stores(context).profile
    store.save(set_profile_name(_load_profile(context), name))
    await update.message.reply_text(f"Nice to meet you, {name}!")


@authorized_only
async def cmd_help(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    await update.message.reply_text(
        "Commands:\n"
        "/today [YYYY-MM-DD] — daily timeline\n"
        "/month [YYYY-MM] — month calendar\n"
        "/dashboard — overdue, today, upcoming\n"
        "/add ... — add a task (send /add for usage)\n"
        "/done <id> [YYYY-MM-DD] — toggle completion\n"
        "/move <id> HH:MM — change a task's time\n"
        "/remind <id> <minutes> — reminder before start (0 = off)\n"
        "/edit <id> <field> <value> — edit a task (send /edit for fields)\n"
        "/delete <id> — delete a task\n"
        "/plan, /snooze <id>, /commit <id> ... — plan your day\n"
        "/profile, /rewards, /addreward <cost> <name>, /redeem <id>\n"
        "/notes, /note <title> | <content>, /editnote <id> <title> | <content>, /delnote <id>\n"
        "/report [YYYY-MM] — completion stats\n"
        "/setkey <key>, /suggest <task title> — AI sub-tasks"
    )


# ---------------------------------------------------------------------------
# Calendar views
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_today(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show the laid-out timeline for today or a given date."""
    from src.core.layout import layout_day, render_timeline
    from src.core.recurrence import occurrences_on

    day = _today()
    if context.args:
        day = _parse_date(context.args[0])
        if day is None:
            await update.message.reply_text("Usage: /today [YYYY-MM-DD]")
            return

    occurrences = occurrences_on(_stores(context).tasks.load(), day)
    blocks = layout_day(occurrences)
    await update.message.reply_text(
        f"Daily timeline for {day:%A, %B %d}\n\n{render_timeline(blocks)}"
    )


@authorized_only
async def cmd_month(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.recurrence import month_grid

    today = _today()
    year, month = today.year, today.month
    if context.args:
        parsed = _parse_month(context.args[0])
        if parsed is None:
            await update.message.reply_text("Usage: /month [YYYY-MM]")
            return
        year, month = parsed

    grid = month_grid(_stores(context).tasks.load(), year, month)
    if not grid:
        await update.message.reply_text(f"No tasks in {year}-{month:02d}.")
        return

    lines = [f"Tasks in {date(year, month, 1):%B %Y}:"]
    for day_of_month in sorted(grid):
        entries = ", ".join(
            f"{'✅' if o.completed else ''}{o.start:%H:%M} {o.title}" for o in grid[day_of_month]
        )
        lines.append(f"{day_of_month:>2}: {entries}")
    await update.message.reply_text("\n".join(lines))


@authorized_only
async def cmd_dashboard(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.planning import dashboard_sections

    stores = _stores(context)
    category = None
    if context.args:
        try:
            category = Category(context.args[0].capitalize())
        except ValueError:
            await update.message.reply_text("Usage: /dashboard [Work|Home|Life]")
            return

    sections = dashboard_sections(
        stores.tasks.load(), stores.plan.load(), _load_profile(context),
        _now(), category=category,
    )
    parts = []
    for title, tasks in (
        ("My Day", sections.my_day),
        ("Overdue", sections.overdue),
        ("Today", sections.today),
        ("Upcoming", sections.upcoming),
    ):
        if tasks:
            parts.append(f"{title}:\n" + "\n".join(_format_task(t) for t in tasks))
    await update.message.reply_text("\n\n".join(parts) or "Nothing to do. Add a task with /add.")


# ---------------------------------------------------------------------------
# Task management
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_add(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    result = parse_add_args(list(context.args or []))
    if isinstance(result, str):
        await update.message.reply_text(result)
        return
    _stores(context).tasks.add(result)
    _sync_reminders(context)
    await update.message.reply_text(f"Added:\n{_format_task(result)}")


@authorized_only
async def cmd_done(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Toggle completion of a task's occurrence.

    Defaults to today; a one-off task not due today defaults to its own day.
    """
    from src.core.gamification import complete
    from src.core.recurrence import occurs_on

    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /done <task id> [YYYY-MM-DD]")
        return
    day = None
    if len(args) > 1:
        day = _parse_date(args[1])
        if day is None:
            await update.message.reply_text("Usage: /done <task id> [YYYY-MM-DD]")
            return

    stores = _stores(context)
    task = stores.tasks.get(args[0])
    if task is None:
        await update.message.reply_text(f"No task with id {args[0]}.")
        return

    if day is None:
        day = _today()
        if task.repeat == Repeat.NONE and not occurs_on(task, day):
            day = task.due_date.date()
    if not occurs_on(task, day):
        await update.message.reply_text(f"'{task.title}' is not scheduled on {day}.")
        return

    outcome = complete(task, day, _load_profile(context))
    stores.tasks.update(outcome.task)
    stores.profile.save(outcome.profile)
    _sync_reminders(context)

    if outcome.completed:
        await update.message.reply_text(
            f"✅ {task.title} done! +{outcome.points_awarded} points "
            f"(🔥 streak {outcome.profile.streak})"
        )
    else:
        await update.message.reply_text(f"↩️ {task.title} marked as not done for {day}.")


@authorized_only
async def cmd_move(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Change a task's time-of-day, snapped to 15 minutes."""
    from src.core.drag import move_to_time, snap_to_grid

    args = context.args or []
    hm = _parse_hhmm(args[1]) if len(args) == 2 else None
    if hm is None:
        await update.message.reply_text("Usage: /move <task id> HH:MM")
        return

    store = _stores(context).tasks
    task = store.get(args[0])
    if task is None:
        await update.message.reply_text(f"No task with id {args[0]}.")
        return

    minutes = snap_to_grid(hm[0] * 60 + hm[1])
    moved = move_to_time(task, minutes // 60, minutes % 60)
    store.update(moved)
    _sync_reminders(context)
    await update.message.reply_text(f"Moved:\n{_format_task(moved)}")


@authorized_only
async def cmd_remind(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from dataclasses import replace

    args = context.args or []
    if len(args) != 2 or not args[1].isdigit():
        await update.message.reply_text("Usage: /remind <task id> <minutes before>")
        return
    store = _stores(context).tasks
    task = store.get(args[0])
    if task is None:
        await update.message.reply_text(f"No task with id {args[0]}.")
        return

    minutes = int(args[1])
    store.update(replace(task, reminder=minutes or None))
    _sync_reminders(context)
    if minutes:
        await update.message.reply_text(f"🔔 I'll remind you {minutes} min before '{task.title}'.")
    else:
        await update.message.reply_text(f"Reminder for '{task.title}' turned off.")


@authorized_only
async def cmd_edit(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Change one field of a task: /edit <id> <field> <value>."""
    from src.data.store import TaskNotFoundError

    args = context.args or []
    if len(args) < 2:
        await update.message.reply_text(_EDIT_USAGE)
        return

    store = _stores(context).tasks
    try:
        task = store.get_or_raise(args[0])
    except TaskNotFoundError:
        await update.message.reply_text(f"No task with id {args[0]}.")
        return

    result = apply_task_edit(task, args[1], " ".join(args[2:]))
    if isinstance(result, str):
        await update.message.reply_text(result)
        return
    store.update(result)
    _sync_reminders(context)
    await update.message.reply_text(f"Updated:\n{_format_task(result)}")


@authorized_only
async def cmd_delete(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /delete <task id>")
        return
    if not _stores(context).tasks.delete(args[0]):
        await update.message.reply_text(f"No task with id {args[0]}.")
        return
    _sync_reminders(context)
    await update.message.reply_text("Task deleted.")


# ---------------------------------------------------------------------------
# Plan my day
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_plan(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.planning import is_day_planned, tasks_to_plan

    stores = _stores(context)
    today = _today()
    candidates = tasks_to_plan(stores.tasks.load(), today)
    if not candidates:
        await update.message.reply_text("Nothing to plan today. Enjoy! 🎉")
        return

    header = "Today's plan is set; planning again replaces it.\n\n" if is_day_planned(
        stores.plan.load(), _load_profile(context), today,
    ) else ""
    await update.message.reply_text(
        f"{header}Tasks to plan:\n"
        + "\n".join(_format_task(t) for t in candidates)
        + "\n\n/snooze <id> moves a task to tomorrow; "
        "/commit <id> ... locks in your day."
    )


@authorized_only
async def cmd_snooze(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.planning import snooze

    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /snooze <task id>")
        return
    store = _stores(context).tasks
    task = store.get(args[0])
    if task is None:
        await update.message.reply_text(f"No task with id {args[0]}.")
        return
    snoozed = snooze(task, _today())
    store.update(snoozed)
    _sync_reminders(context)
    await update.message.reply_text(f"😴 Snoozed to {snoozed.due_date:%Y-%m-%d %H:%M}.")


@authorized_only
async def cmd_commit(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.planning import finish_planning

    stores = _stores(context)
    tasks = stores.tasks.load()
    known = {t.id for t in tasks}
    committed = [tid for tid in (context.args or []) if tid in known]

    result = finish_planning(
        tasks, _load_profile(context), committed=committed, updated=[], deleted=[],
        today=_today(),
    )
    stores.tasks.save(result.tasks)
    stores.plan.save(result.plan)
    stores.profile.save(result.profile)
    await update.message.reply_text(
        f"Your day is planned with {len(committed)} task(s). See /dashboard."
    )


# ---------------------------------------------------------------------------
# Profile, rewards, reports
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_profile(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.gamification import unlocked_badges

    profile = _load_profile(context)
    badges = unlocked_badges(_stores(context).tasks.load(), profile)
    badge_text = ", ".join(b.name for b in badges) or "none yet"
    await update.message.reply_text(
        f"{profile.name or 'You'}: ⭐ {profile.points} points, 🔥 {profile.streak}-day streak\n"
        f"Badges: {badge_text}"
    )


@authorized_only
async def cmd_rewards(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    rewards = _stores(context).rewards.load()
    if not rewards:
        await update.message.reply_text("No rewards yet. Add one with /addreward <cost> <name>.")
        return
    lines = [f"• {r.name} [{r.id}] — {r.cost} points" for r in rewards]
    await update.message.reply_text("Rewards:\n" + "\n".join(lines))


@authorized_only
async def cmd_addreward(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    args = context.args or []
    if len(args) < 2 or not args[0].isdigit():
        await update.message.reply_text("Usage: /addreward <cost> <name>")
        return
    reward = CustomReward(id=_new_id(), name=" ".join(args[1:]), cost=int(args[0]))
    _stores(context).rewards.add(reward)
    await update.message.reply_text(f"Reward added: {reward.name} ({reward.cost} points)")


@authorized_only
async def cmd_redeem(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.gamification import (
        InsufficientPointsError,
        RewardNotFoundError,
        redeem_reward,
    )

    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /redeem <reward id>")
        return
    stores = _stores(context)
    try:
        profile, rewards = redeem_reward(
            _load_profile(context), stores.rewards.load(), args[0],
        )
    except RewardNotFoundError:
        await update.message.reply_text(f"No reward with id {args[0]}.")
        return
    except InsufficientPointsError:
        await update.message.reply_text("Not enough points!")
        return

    stores.profile.save(profile)
    stores.rewards.save(rewards)
    await update.message.reply_text(f"🎁 Enjoy! {profile.points} points left.")


@authorized_only
async def cmd_report(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.reports import completion_report

    today = _today()
    year, month = today.year, today.month
    if context.args:
        parsed = _parse_month(context.args[0])
        if parsed is None:
            await update.message.reply_text("Usage: /report [YYYY-MM]")
            return
        year, month = parsed

    report = completion_report(_stores(context).tasks.load(), year, month)
    by_category = ", ".join(f"{k}: {v}" for k, v in report.by_category.items()) or "—"
    busiest = max(range(len(report.by_day)), key=lambda i: report.by_day[i])
    lines = [
        f"Tasks: {report.total_tasks}",
        f"Completions: {report.total_completions}",
        f"By category: {by_category}",
        f"This month: {sum(report.by_day)} completion(s)",
    ]
    if report.by_day[busiest]:
        lines.append(f"Busiest day: {busiest + 1} ({report.by_day[busiest]})")
    await update.message.reply_text("\n".join(lines))


# ---------------------------------------------------------------------------
# Notes
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_notes(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    notes = _stores(context).notes.load()
    if not notes:
        await update.message.reply_text("No notes yet. Add one with /note <title> | <content>.")
        return
    lines = [f"📝 {n.title} [{n.id}]\n{n.content}" for n in notes]
    await update.message.reply_text("\n\n".join(lines))


@authorized_only
async def cmd_note(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    text = " ".join(context.args or [])
    title, _, content = text.partition("|")
    if not title.strip():
        await update.message.reply_text("Usage: /note <title> | <content>")
        return
    note = Note(
        id=_new_id(),
        title=title.strip(),
        content=content.strip(),
        created_at=_now().isoformat(timespec="seconds"),
    )
    _stores(context).notes.add(note)
    await update.message.reply_text(f"Note saved: {note.title}")


@authorized_only
async def cmd_editnote(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from dataclasses import replace

    args = context.args or []
    title, _, content = " ".join(args[1:]).partition("|")
    if not args or not title.strip():
        await update.message.reply_text("Usage: /editnote <note id> <title> | <content>")
        return

    store = _stores(context).notes
    note = next((n for n in store.load() if n.id == args[0]), None)
    if note is None:
        await update.message.reply_text(f"No note with id {args[0]}.")
        return

    store.update(replace(note, title=title.strip(), content=content.strip()))
    await update.message.reply_text(f"Note updated: {title.strip()}")


@authorized_only
async def cmd_delnote(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    args = context.args or []
    if not args or not _stores(context).notes.delete(args[0]):
        await update.message.reply_text("Usage: /delnote <note id>")
        return
    await update.message.reply_text("Note deleted.")


# ---------------------------------------------------------------------------
# AI suggestions
# ---------------------------------------------------------------------------


@authorized_only
async def cmd_setkey(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    args = context.args or []
    if not args:
        await update.message.reply_text("Usage: /setkey <API key>")
        return
    _stores(context).api_key.save(args[0])
    await update.message.reply_text("API key saved.")


@authorized_only
async def cmd_suggest(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    from src.core.suggestions import SuggestionError, suggest_subtasks

    title = " ".join(context.args or []).strip()
    if not title:
        await update.message.reply_text("Usage: /suggest <task title>")
        return

    api_key = _stores(context).api_key.load() or settings.LLM_API_KEY
    try:
        subtasks = await suggest_subtasks(title, api_key)
    except SuggestionError as exc:
        await update.message.reply_text(str(exc))
        return

    if not subtasks:
        await update.message.reply_text("No suggestions for that one.")
        return
    await update.message.reply_text(
        f"✨ Sub-tasks for '{title}':\n" + "\n".join(f"• {s}" for s in subtasks)
    )


# ---------------------------------------------------------------------------
# App builder
# ---------------------------------------------------------------------------


_COMMANDS: dict[str, Callable[..., Coroutine[Any, Any, None]]] = {
    "start": cmd_start,
    "name": cmd_name,
    "help": cmd_help,
    "today": cmd_today,
    "month": cmd_month,
    "dashboard": cmd_dashboard,
    "add": cmd_add,
    "done": cmd_done,
    "move": cmd_move,
    "remind": cmd_remind,
    "edit": cmd_edit,
    "delete": cmd_delete,
    "plan": cmd_plan,
    "snooze": cmd_snooze,
    "commit": cmd_commit,
    "profile": cmd_profile,
    "rewards": cmd_rewards,
    "addreward": cmd_addreward,
    "redeem": cmd_redeem,
    "report": cmd_report,
    "notes": cmd_notes,
    "note": cmd_note,
    "editnote": cmd_editnote,
    "delnote": cmd_delnote,
    "setkey": cmd_setkey,
    "suggest": cmd_suggest,
}


def build_app(
    stores: Stores | None = None,
    notifier: NotificationPort | None = None,
) -> Application:
    """Build and configure the Telegram Application with all handlers.

    Args:
        stores: Record stores. Defaults to the SQLite file at DATABASE_PATH.
        notifier: Notification port implementation. Defaults to TelegramNotifier
                  (created from the bot instance after app is built).
    """
    app = (
        ApplicationBuilder()
        .token(settings.TELEGRAM_BOT_TOKEN)
        .post_init(_start_reminders)
        .build()
    )

    if stores is None:
        from src.data.store import Stores
        stores = Stores.open()

    if notifier is None:
        from src.adapters.telegram_notifier import TelegramNotifier
        notifier = TelegramNotifier(app.bot)

    app.bot_data["stores"] = stores
    app.bot_data["notifier"] = notifier

    for name, handler in _COMMANDS.items():
        app.add_handler(CommandHandler(name, handler))

    # Reminders cover today + tomorrow; re-derive them after midnight.
    app.job_queue.run_daily(
        _resync_reminders_job, time=_resync_time(), name="reminder_resync",
    )

    logger.info("Telegram bot application built with %d handlers", len(app.handlers[0]))
    return app


async def _start_reminders(app: Application) -> None:
    """Create the session's reminder scheduler once the event loop runs."""
    from src.core.reminders import AsyncioTimers, ReminderScheduler

    notifier: NotificationPort = app.bot_data["notifier"]

    async def _deliver(message: str) -> None:
        for chat_id in settings.ALLOWED_USER_IDS:
            await notifier.send_message(chat_id, message)

    scheduler = ReminderScheduler(
        AsyncioTimers(), _deliver, clock=_now,
        lookahead_days=settings.REMINDER_LOOKAHEAD_DAYS,
    )
    app.bot_data["reminders"] = scheduler
    scheduler.sync(app.bot_data["stores"].tasks.load())


async def _resync_reminders_job(context: ContextTypes.DEFAULT_TYPE) -> None:
    _sync_reminders(context)


def main() -> None:
    """Entry point: build the app and start polling."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    logger.info("Starting Day Planner bot...")
    app = build_app()
    app.run_polling()


if __name__ == "__main__":
    main()
