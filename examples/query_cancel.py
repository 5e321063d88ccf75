import hive_tcli
import os
import time

"""
An asynchronous operation can be cancelled through its handles, from any
connection that shares the session. Combine this with a wall-clock deadline
to bound long statements, since the http transport never times out reads.
"""

DEADLINE_SECONDS = 15

with hive_tcli.connect(
    os.getenv("HIVE_HOST", "localhost"),
    int(os.getenv("HIVE_PORT", "10000")),
    hive_version=13,
) as connection:

    handles = connection.async_execute(
        "SELECT a.code, COUNT(*) FROM default.sample_07 a "
        + "CROSS JOIN default.sample_08 b GROUP BY a.code"
    )

    print("\n Waiting {} seconds before cancelling".format(DEADLINE_SECONDS), end="", flush=True)
    started = time.time()
    while time.time() - started < DEADLINE_SECONDS:
        if connection.async_state(handles).is_terminal:
            break
        print(".", end="", flush=True)
        time.sleep(1)

    if connection.async_is_running(handles):
        print("\n Cancelling the operation.")
        connection.async_cancel(handles)

    print("\n Operation state: {}".format(connection.async_state(handles).value))

    print("\n Now running a separate query on the same session.")
    print(connection.fetch("SELECT 1").as_tuples())
