import asyncio

from dotenv import load_dotenv

from agent_desk.app_config import load_json_config, parse_app_config
from agent_desk.bootstrap import build_runtime
from agent_desk.notifications import ConsoleNotifier
from agent_desk.services.presentation import Presenter
from agent_desk.shell import DeskShell


async def main() -> None:
    load_dotenv()

    app = parse_app_config(load_json_config())
    runtime = build_runtime(app, ConsoleNotifier(line_prefix="desk> "))
    shell = DeskShell(runtime)
    presenter = Presenter(line_prefix="desk> ")

    try:
        await runtime.poller.start()
        sessions = await runtime.registry.load()
        if app.auto_select_first_session and sessions:
            await runtime.registry.select(sessions[0])

        print(f"agent-desk connected to {app.api_base_url} (type 'exit' to quit, '/help' for commands)")
        print(presenter.format_desktop_status(runtime.poller.status, last_updated=runtime.poller.last_updated))
        for line in presenter.format_session_list(
            runtime.registry.sessions,
            active_session_id=runtime.registry.active.id if runtime.registry.active else None,
        ):
            print(line)
        print(presenter.format_chat_header(runtime.registry.active))
        if runtime.log_descriptions:
            print(f"Logging: {', '.join(runtime.log_descriptions)}")
        print()

        await shell.run()
    finally:
        await runtime.aclose()


def run() -> None:
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    run()
