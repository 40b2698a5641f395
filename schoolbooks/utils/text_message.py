from schoolbooks.utils.http_client import HttpClient


class TextMessage:
    """SMS sender for an Infobip-style ``/sms/2/text/advanced`` gateway."""

    PATH = "/sms/2/text/advanced"

    def __init__(self, client: HttpClient, base_url: str, api_key: str):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key

    def send(self, sender: str, message: str, number: str) -> str:
        payload = {
            "messages": [
                {
                    "destinations": [{"to": number}],
                    "from": sender,
                    "text": message,
                }
            ]
        }
        headers = {
            "Authorization": f"App {self.api_key}",
            "Accept": "application/json",
        }
        return self.client.post(self.base_url + self.PATH, payload, headers=headers)
