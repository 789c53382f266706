"""
Kiosk front ends

Badge-entry screens that sit on top of the hive API.
- /box: hive kiosk, badge -> box assignment (admins get a choice)
- /screen: screen kiosk, badge -> current box, disconnect/release/connect
- Optional credential rotation over SSH before connecting to a box
"""
