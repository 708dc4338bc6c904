"""Setup guide served as the hue://setup-guide resource."""

SETUP_GUIDE_URI = "hue://setup-guide"
SETUP_GUIDE_MIME_TYPE = "text/markdown"

SETUP_GUIDE = """# Philips Hue Bridge Setup Guide

## Overview
To control Philips Hue lights the gateway needs two things:
1. **Bridge IP Address** - the local IP of your Hue bridge
2. **Username (Auth Token)** - a token issued by the bridge that authorizes API access

## Step 1: Discover Your Bridge

Use the `discover_bridges` tool (or `GET /api/bridges/discover`) to find Hue
bridges on your network. Each entry carries the bridge's `internalipaddress`.

Alternatively, check your router's admin panel for a device named "Philips-hue".

## Step 2: Create an Auth Token

**You must physically press the link button on top of the bridge before this step.**

1. Press the large round button on top of the bridge
2. Within 30 seconds, call the `create_auth_token` tool (or `POST /api/bridges/auth`) with the bridge IP
3. Save the returned username: this is your auth token

## Step 3: Configure the Gateway

Set these environment variables before starting the server:

```bash
export HUE_BRIDGE_IP="<your-bridge-ip>"
export HUE_USERNAME="<your-auth-token>"
```

or set `bridge_ip` and `username` in the `[hub]` section of `config/gateway.toml`.
Then call `test_connection` to confirm.

## Troubleshooting

- **"link button not pressed"**: press the physical button on the bridge, then retry within 30 seconds
- **Bridge not found**: make sure the bridge is powered on and connected to your network
- **Connection timeout**: check that this machine is on the same network as the bridge

## Security Notes

- Keep the auth token secret; anyone holding it can control your lights
- Tokens do not expire, but can be revoked from the Hue app
- Give each application its own token so it can be revoked independently
"""
