#!/usr/bin/env python3
"""
First-Goal Pick'em Management CLI

Command-line management for the First-Goal Pick'em application: feed syncs,
manual verification, sweeps, leaderboard checks and user administration.
"""

import secrets as secrets_lib

import click
import sqlalchemy as sa
from flask.cli import with_appcontext
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from firstgoal import create_app, db
from firstgoal.errors import FirstGoalError
from firstgoal.models import Game, LeaderboardEntry, Player, User
from firstgoal.services import get_services
from firstgoal.services.scheduler_service import CompletionSweeper
from firstgoal.utils.timezone_utils import classify_game


@click.group()
def cli():
    """First-Goal Pick'em Management CLI"""
    pass


# Feed Sync Commands
@cli.group()
def sync():
    """Roster and schedule synchronization commands"""
    pass


@sync.command()
@with_appcontext
def roster():
    """Sync the active roster from the feed"""
    click.echo("Syncing roster...")
    success, message = get_services().roster_sync.sync_roster()
    click.echo(f"✅ {message}" if success else f"❌ {message}")


@sync.command()
@with_appcontext
def schedule():
    """Sync the season schedule from the feed"""
    click.echo("Syncing schedule...")
    success, message = get_services().schedule_sync.sync_schedule()
    click.echo(f"✅ {message}" if success else f"❌ {message}")


# Game Commands
@cli.group()
def game():
    """Game commands"""
    pass


@game.command("list")
@click.option("--open", "open_only", is_flag=True, help="Only unverified games")
@with_appcontext
def list_games(open_only):
    """List games in start order"""
    query = Game.query.order_by(Game.game_time)
    if open_only:
        query = query.filter(Game.verified.is_(False))
    games = query.all()

    if not games:
        click.echo("No games found.")
        return

    now = get_services().clock()
    for g in games:
        state = classify_game(g.game_time, now).value
        verified = "✅" if g.verified else "⏳"
        click.echo(
            f"  {verified} [{g.id}] {g.matchup} - {g.format_game_time_local()} ({state})"
        )


@game.command("verify")
@click.argument("game_id", type=int)
@click.argument("player_id", type=int)
@with_appcontext
def verify_game(game_id, player_id):
    """Record PLAYER_ID as the first-goal scorer of GAME_ID"""
    try:
        result = get_services().verification.verify_game(game_id, player_id)
    except FirstGoalError as e:
        click.echo(f"❌ {e.message}")
        return

    click.echo(
        f"✅ Verified game {result.game_id}: "
        f"{result.correct_count} correct, {result.incorrect_count} incorrect"
    )


# Sweep Commands
@cli.group()
def sweep():
    """Completion sweep commands"""
    pass


@sweep.command("run")
@with_appcontext
def run_sweep():
    """Run one completion sweep now"""
    services = get_services()
    report = CompletionSweeper(
        services.roster, services.verification, services.oracle
    ).sweep()

    if not report.completed:
        click.echo(f"❌ Sweep failed: {report.error}")
        return

    click.echo(
        f"✅ Sweep checked {report.checked} games: {len(report.verified)} verified, "
        f"{len(report.awaiting)} awaiting confirmation, {len(report.failed)} failed"
    )


# Leaderboard Commands
@cli.group()
def leaderboard():
    """Leaderboard commands"""
    pass


@leaderboard.command("show")
@click.option("--limit", type=int, default=None, help="Number of entries")
@with_appcontext
def show_leaderboard(limit):
    """Print the current standings"""
    rows = get_services().leaderboard.get_leaderboard(limit=limit, force_refresh=True)
    if not rows:
        click.echo("No scored predictions yet.")
        return

    for row in rows:
        click.echo(
            f"  {row.rank:>3}. {row.username:<24} {row.points:>5} pts "
            f"({row.correct_predictions}/{row.total_predictions})"
        )


@leaderboard.command("audit")
@with_appcontext
def audit_leaderboard():
    """Compare stored totals with totals recomputed from verified picks"""
    mismatches = get_services().verification.audit_leaderboard()
    if not mismatches:
        click.echo("✅ Leaderboard matches verified predictions")
        return

    click.echo(f"⚠️  {len(mismatches)} leaderboard entries disagree:")
    for m in mismatches:
        click.echo(
            f"  user {m['user_id']}: stored {m['stored']['points']} pts "
            f"({m['stored']['correct']}/{m['stored']['total']}), expected "
            f"{m['expected']['points']} pts "
            f"({m['expected']['correct']}/{m['expected']['total']})"
        )


# User Management Commands
@cli.group()
def user():
    """User management commands"""
    pass


@user.command("create-admin")
@click.argument("email")
@click.argument("password")
@click.option("--username", help="Display username")
@with_appcontext
def create_admin(email, password, username=None):
    """Create an admin user"""
    email = email.strip().lower()
    if User.query.filter_by(email=email).first():
        click.echo(f"❌ User with email '{email}' already exists!")
        return

    try:
        admin = User(email=email, is_active=True, is_admin=True)
        admin.set_password(password)
        db.session.add(admin)
        db.session.commit()
    except (IntegrityError, SQLAlchemyError) as e:
        db.session.rollback()
        click.echo(f"❌ Error creating user: {str(e)}")
        return

    profile = get_services().profiles.provision(admin, desired_username=username)
    click.echo(f"✅ Created admin user '{profile.username}' ({email})")


@user.command("list")
@with_appcontext
def list_users():
    """List all users"""
    users = User.query.order_by(User.created_at.desc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("Users:")
    for u in users:
        status = "🟢" if u.is_active else "🔴"
        role = "admin" if u.is_admin else "fan"
        username = u.profile.username if u.profile else "-"
        click.echo(f"  {status} {username} ({u.email}) - {role}")


# Database Commands
@cli.group()
def db_cmd():
    """Database commands"""
    pass


@db_cmd.command("init")
@with_appcontext
def init_db():
    """Initialize database tables"""
    try:
        db.create_all()
        click.echo("✅ Database tables created successfully!")
    except SQLAlchemyError as e:
        click.echo(f"❌ Error initializing database: {str(e)}")


@cli.command()
def secrets():
    """Generate SECRET_KEY and WTF_CSRF_SECRET_KEY values"""
    click.echo("🔐 Generating secure secrets for First-Goal Pick'em...")
    click.echo("=" * 50)
    click.echo(f"SECRET_KEY={secrets_lib.token_urlsafe(32)}")
    click.echo(f"WTF_CSRF_SECRET_KEY={secrets_lib.token_urlsafe(32)}")
    click.echo("=" * 50)
    click.echo("📝 Copy these values to your .env file")
    click.echo("⚠️  Keep these secrets secure and never commit them to version control!")


@cli.command()
@with_appcontext
def status():
    """Show application status"""
    click.echo("🏒 First-Goal Pick'em Application Status")
    click.echo("=" * 40)

    try:
        db.session.execute(sa.text("SELECT 1"))
        click.echo("✅ Database: Connected")
    except SQLAlchemyError as e:
        click.echo(f"❌ Database: Error - {str(e)}")
        return

    services = get_services()
    next_game = services.roster.get_next_game()
    if next_game:
        click.echo(f"✅ Next Game: {next_game.opponent} at {next_game.game_time.isoformat()}")
    else:
        click.echo("⚠️  Next Game: None scheduled")

    click.echo(f"👥 Active Users: {User.query.filter_by(is_active=True).count()}")
    click.echo(f"🏒 Active Players: {Player.query.filter_by(is_active=True).count()}")

    total = Game.query.count()
    verified = Game.query.filter_by(verified=True).count()
    click.echo(f"🥅 Games: {verified}/{total} verified")
    click.echo(f"🏆 Ranked Users: {LeaderboardEntry.query.count()}")
    click.echo(f"🔎 Result Oracle: {services.oracle.name}")
    stats = services.cache.get_stats()
    click.echo(
        f"🗃️  Cache: {stats['entries']} entries, "
        f"{stats['hits']} hits / {stats['misses']} misses"
    )


if __name__ == "__main__":
    app = create_app(start_scheduler=False)
    with app.app_context():
        cli()
