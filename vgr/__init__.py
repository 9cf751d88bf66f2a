"""VPN Gateway Reconciler (VGR).

One-shot, single-host recovery for a VPN client container and the containers
that share its network:
 - probe a site served through the VPN
 - start or restart the VPN container when it is stopped or cut off
 - start/restart every container carrying the membership label
 - re-check, and retry a bounded number of times

Run it from cron or a scheduler; it exits non-zero when the retry budget runs out.
"""
