import asyncio
import sys

from dotenv import load_dotenv
from loguru import logger

from advisor_chat.app_config import load_json_config, parse_app_config, resolve_runtime_env
from advisor_chat.bootstrap import bootstrap_runtime


async def main() -> None:
    load_dotenv()

    config = parse_app_config(load_json_config()).with_env(resolve_runtime_env())
    runtime = await bootstrap_runtime(config)
    app = runtime.app

    print("AI Investment Assistant (type 'exit' to quit, '/help' for commands)")
    print(f"Endpoint: {config.endpoint_url}")
    print(f"Saved conversations: {len(runtime.session_store.sessions)}")
    print(f"Voice input: {'available (/voice)' if runtime.speech_enabled else 'not configured'}")
    if runtime.log_descriptions:
        print(f"Logging: {', '.join(runtime.log_descriptions)}")
    print()

    loop = asyncio.get_running_loop()
    try:
        while True:
            try:
                # Read off the event loop so the reachability probe keeps running.
                user_input = await loop.run_in_executor(None, input, "you> ")
            except (EOFError, KeyboardInterrupt):
                break

            if user_input.strip() in ("exit", "quit"):
                break

            try:
                await app.run(user_input)
                print()
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")
    finally:
        await runtime.close()


if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        sys.exit(130)
