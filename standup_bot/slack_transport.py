"""
Slack transport: Web API calls for lookups and sends, Socket Mode for inbound direct messages.
"""

import re
import threading
import time
from typing import Callable, Dict, List, Optional

from slack_sdk import WebClient
from slack_sdk.errors import SlackApiError
from slack_sdk.socket_mode import SocketModeClient
from slack_sdk.socket_mode.request import SocketModeRequest
from slack_sdk.socket_mode.response import SocketModeResponse

from .utils import TransportSendError, logger

InboundCallback = Callable[[str, str, bool], None]

_CHANNEL_ID_PATTERN = re.compile(r"^[CG][A-Z0-9]{6,}$")


class SlackTransport:
    """Thin wrapper over the Slack clients used by the standup bot."""

    def __init__(self, bot_token: str, app_token: Optional[str] = None, web_client=None, socket_client=None):
        self.client = web_client or WebClient(token=bot_token)
        self.app_token = app_token
        self.socket_client = socket_client
        self.bot_user_id = None
        self._callbacks: List[InboundCallback] = []
        self._user_list_cache = None
        self._user_list_cache_time = 0
        self._dm_channels: Dict[str, str] = {}
        self._lock = threading.Lock()

    def authenticate(self):
        """Return (user_id, user_name) of the bot token's identity."""
        auth = self.client.auth_test()
        self.bot_user_id = auth['user_id']
        logger.info(f"Bot user ID: {self.bot_user_id}")
        return auth['user_id'], auth.get('user', '')

    # Lookups

    def _list_users(self, cache_seconds=600):
        """Get every workspace member, paginated, with caching."""
        current_time = time.time()
        with self._lock:
            if self._user_list_cache is not None and current_time - self._user_list_cache_time < cache_seconds:
                return self._user_list_cache

        users = []
        cursor = None
        while True:
            response = self.client.users_list(cursor=cursor, limit=200)
            users.extend(response['users'])
            cursor = (response.get('response_metadata') or {}).get('next_cursor')
            if not cursor:
                break

        with self._lock:
            self._user_list_cache = users
            self._user_list_cache_time = current_time
        logger.info(f"✅ Retrieved {len(users)} users from Slack")
        return users

    def resolve_identity(self, name: str) -> Optional[str]:
        """Look up a user id by email address, handle or display name."""
        name = name.strip().lstrip('@')
        try:
            if '@' in name:
                response = self.client.users_lookupByEmail(email=name)
                user = response['user']
                return None if user.get('deleted') else user['id']

            for user in self._list_users():
                if user.get('deleted'):
                    continue
                profile = user.get('profile', {})
                if name in (user.get('name'), profile.get('display_name')):
                    return user['id']
        except SlackApiError as e:
            logger.warning(f"Slack API error finding user {name!r}: {e.response['error']}")
        return None

    def resolve_channel(self, name: str) -> Optional[str]:
        """Resolve a channel name (with or without '#') to its id."""
        name = name.strip().lstrip('#')
        if _CHANNEL_ID_PATTERN.match(name):
            return name

        try:
            cursor = None
            while True:
                response = self.client.conversations_list(
                    cursor=cursor, limit=200, exclude_archived=True, types="public_channel,private_channel"
                )
                for channel in response['channels']:
                    if channel.get('name') == name:
                        return channel['id']
                cursor = (response.get('response_metadata') or {}).get('next_cursor')
                if not cursor:
                    break
        except SlackApiError as e:
            logger.error(f"Slack API error looking up channel {name!r}: {e.response['error']}")
        return None

    # Sends

    def _open_dm(self, user_id: str) -> str:
        channel = self._dm_channels.get(user_id)
        if channel is None:
            dm_response = self.client.conversations_open(users=[user_id])
            channel = dm_response['channel']['id']
            self._dm_channels[user_id] = channel
        return channel

    def send_direct(self, user_id: str, text: str) -> str:
        """Send a direct message, returning the message timestamp."""
        try:
            response = self.client.chat_postMessage(channel=self._open_dm(user_id), text=text)
            return response['ts']
        except SlackApiError as e:
            raise TransportSendError(f"Failed to send DM to {user_id}: {e.response['error']}") from e

    def send_to_channel(self, channel_id: str, text: str, attachments: Optional[list] = None) -> str:
        try:
            kwargs = {'channel': channel_id, 'text': text}
            if attachments:
                kwargs['attachments'] = attachments
            response = self.client.chat_postMessage(**kwargs)
            return response['ts']
        except SlackApiError as e:
            raise TransportSendError(f"Failed to post to {channel_id}: {e.response['error']}") from e

    # Inbound

    def subscribe(self, callback: InboundCallback):
        self._callbacks.append(callback)

    def handle_socket_request(self, client, request: SocketModeRequest):
        """Acknowledge every envelope, then forward direct messages to subscribers."""
        client.send_socket_mode_response(SocketModeResponse(envelope_id=request.envelope_id))

        if request.type != "events_api":
            return

        event = request.payload.get("event", {})
        if event.get("type") != "message" or event.get("channel_type") != "im":
            return

        is_edit = event.get("subtype") == "message_changed"
        message = event.get("message", {}) if is_edit else event
        if message.get("bot_id") or message.get("subtype") == "bot_message":
            return
        if not is_edit and event.get("subtype"):
            # joins, deletions and other housekeeping events
            return

        user_id = message.get("user")
        if not user_id:
            return

        for callback in self._callbacks:
            try:
                callback(user_id, message.get("text", ""), is_edit)
            except Exception as e:
                logger.error(f"❌ Error handling message from {user_id}", e)

    def start(self):
        """Connect Socket Mode. Listener threads are owned by the socket client."""
        if self.socket_client is None:
            # A single listener worker keeps envelopes in the order Slack delivered them.
            self.socket_client = SocketModeClient(app_token=self.app_token, web_client=self.client, concurrency=1)
        self.socket_client.socket_mode_request_listeners.append(self.handle_socket_request)
        logger.info("🔌 Starting Socket Mode client...")
        self.socket_client.connect()

    def close(self):
        if self.socket_client is not None:
            self.socket_client.close()
