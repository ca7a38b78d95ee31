"""MemberHub CLI tool."""

import typer

app = typer.Typer(name="memberhub", help="MemberHub CLI")
db_app = typer.Typer(help="Database management commands")
roles_app = typer.Typer(help="Role hierarchy commands (via the API)")
app.add_typer(db_app, name="db")
app.add_typer(roles_app, name="roles")


def _client(token: str):
    import httpx
    from memberhub.core.config import settings

    token = token or settings.API_TOKEN
    if not token:
        typer.echo("No API token; pass --token or set API_TOKEN", err=True)
        raise typer.Exit(code=1)
    return httpx.Client(
        base_url=settings.API_URL,
        headers={"Authorization": f"Bearer {token}"},
        timeout=30,
    )


def _check(resp) -> dict:
    if resp.status_code >= 400:
        try:
            detail = resp.json().get("detail")
        except ValueError:
            detail = resp.text
        typer.echo(f"Error {resp.status_code}: {detail}", err=True)
        raise typer.Exit(code=1)
    return resp.json()


@db_app.command("init")
def db_init():
    """Create all tables."""
    from memberhub.db.session import init_db

    init_db()
    typer.echo("Tables created")


@db_app.command("seed")
def db_seed():
    """Seed default roles and the admin user."""
    from memberhub.db.session import SessionLocal, init_db
    from memberhub.db.seeds.seed_roles import seed_roles
    from memberhub.db.seeds.seed_admin import seed_admin

    init_db()
    db = SessionLocal()
    try:
        seed_roles(db)
        admin = seed_admin(db)
        typer.echo(f"Seeds applied (admin id {admin.id})")
    finally:
        db.close()


@db_app.command("reset")
def db_reset():
    """Drop and recreate all tables (DANGER)."""
    confirm = typer.confirm("This will DROP every MemberHub table. Continue?")
    if not confirm:
        raise typer.Abort()
    import memberhub.models  # noqa: F401
    from memberhub.db.base import Base
    from memberhub.db.session import engine

    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    typer.echo("Database reset")


@app.command("token")
def token(
    user_id: int = typer.Argument(..., help="User id to issue the token for"),
    minutes: int = typer.Option(None, help="Lifetime in minutes"),
):
    """Mint an access token for local use."""
    from datetime import timedelta
    from memberhub.core.security import create_access_token

    delta = timedelta(minutes=minutes) if minutes else None
    typer.echo(create_access_token(user_id, delta))


@roles_app.command("list")
def roles_list(token: str = typer.Option("", help="Bearer token")):
    """Show roles highest first, with the actions you may take."""
    from memberhub.console import render_roles

    with _client(token) as client:
        payload = _check(client.get("/roles/"))
    for line in render_roles(payload):
        typer.echo(line)


@roles_app.command("move")
def roles_move(
    role_id: int = typer.Argument(..., help="Role to move"),
    direction: str = typer.Argument(..., help="up or down"),
    token: str = typer.Option("", help="Bearer token"),
):
    """Swap a role with its neighbor."""
    from memberhub.console import plan_move, render_roles

    with _client(token) as client:
        payload = _check(client.get("/roles/"))
        try:
            steps = plan_move(payload, role_id, direction)
        except ValueError as e:
            typer.echo(str(e), err=True)
            raise typer.Exit(code=1)
        for target_id, position in steps:
            _check(client.put(f"/roles/{target_id}/position", json={"position": position}))
        payload = _check(client.get("/roles/"))
    for line in render_roles(payload):
        typer.echo(line)


@app.command("serve")
def serve(
    host: str = typer.Option("0.0.0.0", help="Host"),
    port: int = typer.Option(8000, help="Port"),
    reload: bool = typer.Option(False, help="Auto-reload"),
):
    """Start the FastAPI server."""
    import uvicorn
    uvicorn.run("memberhub.main:app", host=host, port=port, reload=reload)


if __name__ == "__main__":
    app()
