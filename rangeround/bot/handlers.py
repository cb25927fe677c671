import logging

from telegram import Update
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)

from rangeround.config import settings
from rangeround.constants import CALM
from rangeround.bot.keyboards import (
    club_keyboard,
    direction_keyboard,
    holes_keyboard,
    putts_keyboard,
)
from rangeround.engine.models import HolePhase, Shot
from rangeround.engine.session import RoundSession
from rangeround.errors import ValidationError
from rangeround.services.round_service import get_round_service

logger = logging.getLogger(__name__)

# Conversation states
HOLE_COUNT, CLUB_SELECT, DIRECTION_SELECT, DISTANCE_INPUT, PUTTS_SELECT = range(5)

# User data keys
PROFILE_ID = "profile_id"
CLUB = "club"
DIRECTION = "direction"


def hole_prompt(session: RoundSession) -> str:
    """Header for the current hole: layout, conditions and distance to go."""
    rnd = session.round
    hole = session.current_hole()
    lines = [f"Hole {hole.number} of {len(rnd.holes)} - Par {hole.par}, {hole.yardage} yds"]
    if hole.wind_direction == CALM:
        lines.append("Wind: calm")
    else:
        lines.append(f"Wind: {hole.wind_speed} mph {hole.wind_direction}")
    if hole.hazard:
        lines.append(f"Hazard: {hole.hazard_type} {hole.hazard.lower()}")
    lines.append(f"To target: {hole.distance_to_target} yds")
    if session.hole_phase() == HolePhase.ON_GREEN:
        lines.append("You're on the green. Hole out when ready.")
    lines.append(f"Mulligans: {rnd.mulligans_allowed - rnd.mulligans_used} left")
    return "\n".join(lines)


def shot_summary(shot: Shot) -> str:
    text = f"{shot.club}: {shot.final_distance} yds {shot.input_direction}"
    if shot.hit_hazard:
        text += " - in the hazard"
        if shot.penalty_strokes:
            text += f" (+{shot.penalty_strokes} stroke)"
    if shot.distance_penalty:
        text += f", +{shot.distance_penalty} yds"
    return f"{text}. {shot.remaining_distance} to go."


def round_summary(session: RoundSession) -> str:
    stats = session.round_stats()
    score = f"{stats.score:+d}" if stats.score else "E"
    return (
        f"Round complete! {stats.total_strokes} strokes over {stats.completed_holes} holes "
        f"({score}, par {stats.total_par})."
    )


def _profile_id(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    profile_id = context.user_data.get(PROFILE_ID)
    if profile_id is None:
        name = (update.effective_user.first_name or "Golfer")[:50]
        if len(name) < 2:
            name = "Golfer"
        profile_id = get_round_service().store.create_profile(name).id
        context.user_data[PROFILE_ID] = profile_id
    return profile_id


def _club_prompt(profile_id: int, prefix: str = ""):
    service = get_round_service()
    session = service.session_for(profile_id)
    clubs = [c.club_name for c in service.store.list_clubs(profile_id) if c.club_name != "Putter"]
    rnd = session.round
    keyboard = club_keyboard(
        clubs,
        suggested=service.suggested_club(profile_id),
        can_mulligan=rnd.mulligans_used < rnd.mulligans_allowed,
    )
    return f"{prefix}{hole_prompt(session)}\n\nPick a club:", keyboard


async def _show_hole(query, context: ContextTypes.DEFAULT_TYPE, prefix: str = "") -> int:
    text, keyboard = _club_prompt(context.user_data[PROFILE_ID], prefix)
    await query.edit_message_text(text, reply_markup=keyboard)
    return CLUB_SELECT


async def help_command(update: Update, context: ContextTypes.DEFAULT_TYPE) -> None:
    """Show help message."""
    await update.message.reply_text(
        "Range Round\n\n"
        "/round - Start a new virtual round\n"
        "/cancel - Walk off the course\n"
        "/help - Show this message\n\n"
        "For every swing at the range:\n"
        "1. Pick the club you hit (★ marks the suggestion)\n"
        "2. Pick where it went\n"
        "3. Type how far it carried, in yards\n"
        "Tap Hole out once you're on the green and enter your putts."
    )


async def start_round(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Start a new round via /round command."""
    _profile_id(update, context)
    await update.message.reply_text("How many holes?", reply_markup=holes_keyboard())
    return HOLE_COUNT


async def hole_count_selected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Handle 3, 9 or 18 hole selection."""
    query = update.callback_query
    await query.answer()

    hole_count = int(query.data.replace("holes:", ""))
    profile_id = context.user_data[PROFILE_ID]
    get_round_service().start_round(profile_id, hole_count)
    return await _show_hole(query, context, prefix=f"Starting {hole_count}-hole round!\n\n")


async def club_selected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    club = query.data.replace("club:", "")
    context.user_data[CLUB] = club
    await query.edit_message_text(f"{club} - which way did it go?", reply_markup=direction_keyboard())
    return DIRECTION_SELECT


async def direction_selected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    direction = query.data.replace("dir:", "")
    context.user_data[DIRECTION] = direction
    await query.edit_message_text(
        f"{context.user_data[CLUB]}, {direction}.\n\nHow far did it carry? (yards)"
    )
    return DISTANCE_INPUT


async def distance_entered(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Record the shot once the carry is typed in."""
    service = get_round_service()
    profile_id = context.user_data[PROFILE_ID]
    text = update.message.text.strip().lower().replace("yds", "").replace("yards", "").strip()

    try:
        distance = float(text)
        shot = service.record_shot(profile_id, context.user_data[CLUB], distance, context.user_data[DIRECTION])
    except ValueError:
        await update.message.reply_text("Please enter a number of yards, e.g. 150")
        return DISTANCE_INPUT
    except ValidationError as e:
        await update.message.reply_text(f"{e.message}. Try again:")
        return DISTANCE_INPUT

    session = service.session_for(profile_id)
    if session.round is None or session.round.is_round_complete:
        await update.message.reply_text("No round in progress. Start one with /round")
        return ConversationHandler.END

    prefix = f"{shot_summary(shot)}\n\n" if shot else ""
    text, keyboard = _club_prompt(profile_id, prefix)
    await update.message.reply_text(text, reply_markup=keyboard)
    return CLUB_SELECT


async def action_selected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Undo, mulligan, hole out or skip from the club prompt."""
    query = update.callback_query
    await query.answer()

    service = get_round_service()
    profile_id = context.user_data[PROFILE_ID]
    action = query.data.replace("act:", "")

    if action == "holeout":
        await query.edit_message_text("How many putts?", reply_markup=putts_keyboard())
        return PUTTS_SELECT

    if action == "undo":
        shot = service.undo_last_shot(profile_id)
        prefix = f"Removed {shot.club} shot.\n\n" if shot else "Nothing to undo.\n\n"
    elif action == "mulligan":
        shot = service.use_mulligan(profile_id)
        prefix = f"Mulligan! {shot.club} shot replayed.\n\n" if shot else "No mulligan available.\n\n"
    else:
        service.skip_hole(profile_id)
        session = service.session_for(profile_id)
        if session.round.is_round_complete:
            return await _end_round(query, context, session)
        prefix = "Hole skipped.\n\n"

    return await _show_hole(query, context, prefix=prefix)


async def putts_selected(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    query = update.callback_query
    await query.answer()

    service = get_round_service()
    profile_id = context.user_data[PROFILE_ID]
    session = service.session_for(profile_id)
    hole_index = session.round.current_hole_index

    service.finish_hole(profile_id, int(query.data.replace("putts:", "")))

    if session.round.is_round_complete:
        return await _end_round(query, context, session)

    stats = session.hole_stats(hole_index)
    number = session.round.holes[hole_index].number
    return await _show_hole(
        query, context,
        prefix=f"Hole {number}: {stats.strokes} strokes, {stats.score_name}.\n\n",
    )


async def _end_round(query, context: ContextTypes.DEFAULT_TYPE, session: RoundSession) -> int:
    await query.edit_message_text(round_summary(session))
    get_round_service().end_session(context.user_data[PROFILE_ID])
    return ConversationHandler.END


async def cancel(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    """Walk off mid-round. Everything logged so far stays in the store."""
    profile_id = context.user_data.get(PROFILE_ID)
    service = get_round_service()
    session = service.session_for(profile_id) if profile_id else None

    if session is not None and session.round is not None:
        stats = session.round_stats()
        service.end_session(profile_id)
        await update.message.reply_text(
            f"Round ended early. {stats.completed_holes} holes played, {stats.total_strokes} strokes."
        )
    else:
        await update.message.reply_text("No round in progress.")

    context.user_data.pop(CLUB, None)
    context.user_data.pop(DIRECTION, None)
    return ConversationHandler.END


def build_bot_app() -> Application:
    """Build and return the telegram bot Application."""
    app = Application.builder().token(settings.telegram_bot_token).build()

    conv_handler = ConversationHandler(
        entry_points=[CommandHandler("round", start_round)],
        states={
            HOLE_COUNT: [
                CallbackQueryHandler(hole_count_selected, pattern=r"^holes:"),
            ],
            CLUB_SELECT: [
                CallbackQueryHandler(club_selected, pattern=r"^club:"),
                CallbackQueryHandler(action_selected, pattern=r"^act:"),
            ],
            DIRECTION_SELECT: [
                CallbackQueryHandler(direction_selected, pattern=r"^dir:"),
            ],
            DISTANCE_INPUT: [
                MessageHandler(filters.TEXT & ~filters.COMMAND, distance_entered),
            ],
            PUTTS_SELECT: [
                CallbackQueryHandler(putts_selected, pattern=r"^putts:"),
            ],
        },
        fallbacks=[CommandHandler("cancel", cancel)],
    )

    app.add_handler(conv_handler)
    app.add_handler(CommandHandler("help", help_command))

    return app
