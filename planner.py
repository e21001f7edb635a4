import argparse
import asyncio
import logging

from fajax.config import NetworkConfig
from fajax.errors import ApiError, TransportError
from fajax.server import SimulatedBackend


async def run_session(backend: SimulatedBackend, timeout: int) -> None:
    client = backend.client(timeout=timeout)

    async def attempt(label, call):
        try:
            result = await call
        except TransportError as e:
            print(f"{label}: transport failed ({e.reason}: {e.message})")
        except ApiError as e:
            print(f"{label}: server said {e.status} {e.message}")
        else:
            print(f"{label}: {result['message']}")
            return result

    await attempt("register", client.register("student@example.com", "secret", "Student"))
    if not client.is_logged_in():
        await attempt("login", client.login("student@example.com", "secret"))
    if not client.is_logged_in():
        print("not signed in, giving up")
        return

    for title, priority in (("Read chapter 3", "high"), ("Lab report", "medium")):
        await attempt(f"create {title!r}", client.create_task({"title": title, "priority": priority}))

    listed = await attempt("list tasks", client.get_tasks())
    if listed:
        for task in listed["data"]["tasks"]:
            print(f"  - [{task['priority']}] {task['title']}")


def main():
    parser = argparse.ArgumentParser(description="Study planner over a simulated lossy network")
    parser.add_argument("--min-delay", type=int, default=1000, help="minimum leg delay in ms")
    parser.add_argument("--max-delay", type=int, default=3000, help="maximum leg delay in ms")
    parser.add_argument("--drop-rate", type=float, default=0.2, help="probability of losing a message")
    parser.add_argument("--timeout", "-t", type=int, default=0, help="client request timeout in ms (0 = none)")
    parser.add_argument("--seed", "-s", type=int, default=None, help="random seed for delays and drops")
    parser.add_argument("--debug", "-D", action="store_true", help="enable debug logging")

    args = parser.parse_args()
    try:
        config = NetworkConfig(min_delay_ms=args.min_delay, max_delay_ms=args.max_delay,
                               drop_rate=args.drop_rate, seed=args.seed, debug=args.debug)
    except ValueError as e:
        parser.error(str(e))
    logging.basicConfig(
        level=logging.DEBUG if config.debug else logging.WARNING,
        format="%(asctime)s [%(name)s] %(message)s",
    )

    backend = SimulatedBackend(config).start()
    asyncio.run(run_session(backend, args.timeout))
    print(backend.network.get_stats().format(config.drop_rate))


if __name__ == "__main__":
    main()
