"""
EZ-GEN: white-label mobile app shell generator.

Scaffolds Ionic + Capacitor WebView shells around a customer website and drives
the npm, Capacitor, keytool and Gradle toolchains to produce installable
Android artifacts.
"""

__version__ = "1.0.0"
__author__ = "EZ-GEN Team"
