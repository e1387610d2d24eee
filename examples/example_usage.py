"""Example usage of the RestService class."""

import asyncio
import json

from restbase.rest_service import RestService, RestServiceError

BASE_URL = "https://jsonplaceholder.typicode.com/"


class PlaceholderError(RestServiceError):
    pass


class Placeholder(RestService):
    """JSON service: every call returns the decoded body."""

    url: str = BASE_URL

    def load_body(self, body):
        return json.loads(body)

    def check_error(self, document):
        if isinstance(document, dict) and "error" in document:
            raise PlaceholderError(document["error"])

    def parse_response(self, document):
        return document

    async def todo(self, todo_id):
        return await self.get(f"todos/{todo_id}")

    async def todos_for(self, *user_ids):
        return await self.get("todos", {"userId": list(user_ids)})


async def main():
    async with Placeholder() as service:
        print(await service.todo(1))

        todos = await service.todos_for(1, 2)
        print(f"{len(todos)} todos for users 1 and 2")


asyncio.run(main())
