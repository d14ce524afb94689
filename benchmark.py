import argparse
import asyncio
import os
import tempfile
import time

from live_store import open_store


async def run_mode(config: dict, num_actions: int):
    async with open_store(config) as store:
        delivered = asyncio.Event()
        received = 0

        def on_action(action):
            nonlocal received
            received += 1
            if received == num_actions:
                delivered.set()

        store.on_new_action(on_action)
        await store.create_stream("bench_stream", {"count": 0})

        # --- Append benchmark ---
        start_append = time.perf_counter()
        await asyncio.gather(
            *(
                store.save_action({"type": "Increment", "meta": {"stream_id": "bench_stream", "sequence_number": i}})
                for i in range(num_actions)
            )
        )
        append_time = time.perf_counter() - start_append

        # --- Read benchmark ---
        start_read = time.perf_counter()
        for i in range(num_actions):
            await store.get_action("bench_stream", i)
        read_time = time.perf_counter() - start_read

        # --- Live feed: time until the last action reached the subscriber ---
        await asyncio.wait_for(delivered.wait(), timeout=60)
        feed_time = time.perf_counter() - start_append

        # --- Snapshot compare-and-swap benchmark ---
        start_snapshot = time.perf_counter()
        for i in range(1, num_actions + 1):
            await store.save_snapshot({"count": i, "meta": {"stream_id": "bench_stream", "sequence_number": i}})
        snapshot_time = time.perf_counter() - start_snapshot

    return append_time, read_time, feed_time, snapshot_time


def report(mode: str, num_actions: int, timings):
    append_time, read_time, feed_time, snapshot_time = timings

    def rate(seconds):
        return num_actions / seconds if seconds > 0 else 0

    print(
        f"{mode:<18} - Append: {append_time:.4f}s ({rate(append_time):,.0f} actions/s), "
        f"Read: {read_time:.4f}s ({rate(read_time):,.0f} actions/s), "
        f"Live feed drained after {feed_time:.4f}s, "
        f"Snapshots: {snapshot_time:.4f}s ({rate(snapshot_time):,.0f} saves/s)"
    )


async def benchmark(num_actions: int, polling_interval: float):
    print(f"Benchmarking with {num_actions} actions...")

    memory_timings = await run_mode({"url": "sqlite://", "polling_interval": polling_interval}, num_actions)

    with tempfile.TemporaryDirectory() as tmpdir:
        db_path = os.path.join(tmpdir, "bench.db")
        file_config = {"url": f"sqlite:///{db_path}", "polling_interval": polling_interval}
        file_timings = await run_mode(file_config, num_actions)

    print(f"\n--- Results for {num_actions} actions ---")
    report("In-memory SQLite", num_actions, memory_timings)
    report("File-based SQLite", num_actions, file_timings)


async def main():
    parser = argparse.ArgumentParser()
    parser.add_argument("--num-actions", type=int, default=1000)
    parser.add_argument("--polling-interval", type=float, default=0.05)
    args = parser.parse_args()
    await benchmark(args.num_actions, args.polling_interval)


if __name__ == "__main__":
    asyncio.run(main())
