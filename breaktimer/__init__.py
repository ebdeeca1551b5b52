"""Work/break interval timer living in the system tray."""
