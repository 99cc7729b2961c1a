"""
Basic HTTP Builder Usage Examples

Demonstrates GET with query parameters, JSON / form / XML bodies and
response decoding.
"""

from dataclasses import dataclass

from http_builder import Client, XmlBody


@dataclass
class Post:
    userId: int
    id: int
    title: str
    body: str


def get_with_query():
    """GET with query parameters."""
    print("\n=== GET with query ===")

    with Client("https://jsonplaceholder.typicode.com") as client:
        response = client.r().set_query_param("userId", 1).get("posts")

        print(f"URL: {response.url}")
        print(f"Status: {response.status}")
        print(f"First title: {response.json_path('0.title')}")


def decode_into_dataclass():
    """Decode JSON straight into a dataclass."""
    print("\n=== JSON into dataclass ===")

    with Client("https://jsonplaceholder.typicode.com") as client:
        post = client.r().get("posts/1").json(Post)
        print(f"Post: {post}")


def post_bodies():
    """Body type picks the encoding."""
    print("\n=== POST bodies ===")

    with Client("https://httpbin.org") as client:
        # dict -> application/json
        response = client.r().set_body({"title": "My Post", "userId": 1}).post("post")
        print(f"JSON: {response.json()['headers']['Content-Type']}")

        # form data -> application/x-www-form-urlencoded
        response = client.r().set_form_data_many({"user": "john", "lang": "ru"}).post("post")
        print(f"Form: {response.json()['form']}")

        # explicit XML
        response = client.r().set_body(XmlBody({"note": {"to": "Tove"}})).post("post")
        print(f"XML: {response.json()['data']}")


def shared_defaults():
    """Client-level headers, auth and cookies are copied into each request."""
    print("\n=== Shared defaults ===")

    client = (
        Client("https://httpbin.org", timeout=(3, 10))
        .set_header("X-App", "demo")
        .set_auth_token("my-token")
        .add_cookie("lang", "ru")
    )
    try:
        response = client.r().get("anything")
        data = response.json()
        print(f"Authorization: {data['headers']['Authorization']}")
        print(f"Cookie: {data['headers'].get('Cookie')}")
    finally:
        client.close()


if __name__ == "__main__":
    get_with_query()
    decode_into_dataclass()
    post_bodies()
    shared_defaults()
