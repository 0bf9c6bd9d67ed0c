#!/usr/bin/env python3
from app.main import main

main()
