# -*- coding: utf-8 -*-
"""healthlog: health journal backend with AI parsing into structured records."""
