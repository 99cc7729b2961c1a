"""
Retries, debug output and logging.

Only transport failures are retried; any HTTP status is a completed
exchange.
"""

import asyncio

from http_builder import Client, HTTPBuilderLogger, LoggingConfig, RequestExecutionError


def retry_on_transport_errors():
    print("\n=== Retries ===")

    logger = HTTPBuilderLogger(LoggingConfig.create(level="INFO", format="colored"))
    client = Client("http://127.0.0.1:9", retry_count=3, logger=logger)
    client.set_retry_wait_time(0.2)

    try:
        client.r().get("unreachable")
    except RequestExecutionError as e:
        print(f"Failed after {e.attempts} attempts: {e.last_error}")
    finally:
        client.close()


def debug_to_file():
    print("\n=== Debug file ===")

    with Client("https://httpbin.org") as client:
        client.set_debug_file("http_debug")  # http_debug.txt, rotated at 1 MB
        client.r().set_body({"name": "John"}).post("post")
        print("Request/response records written to http_debug.txt")


async def async_requests():
    print("\n=== Async ===")

    with Client("https://httpbin.org") as client:
        responses = await asyncio.gather(
            *(client.r().set_query_param("n", i).as_async().get("get") for i in range(3))
        )
        for response in responses:
            print(response.json()["args"])


if __name__ == "__main__":
    retry_on_transport_errors()
    debug_to_file()
    asyncio.run(async_requests())
